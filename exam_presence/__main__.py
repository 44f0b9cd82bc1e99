import logging
import sys

import uvicorn
from dotenv import load_dotenv

from .config import Config


def setup_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main() -> None:
    load_dotenv()
    try:
        config = Config.load()
    except ValueError as exc:
        setup_logging()
        logging.error("Failed to load configuration: %s", exc)
        sys.exit(1)
    setup_logging(config.log_level)
    logging.info("Starting exam presence server on %s:%d", config.bind, config.port)
    uvicorn.run(
        "exam_presence.main:app",
        host=config.bind,
        port=config.port,
        reload=False,
        log_level=config.log_level,
        ws_ping_interval=config.ping_interval,
        ws_ping_timeout=config.ping_timeout,
    )


if __name__ == "__main__":
    main()
