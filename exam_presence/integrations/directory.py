"""Display-name lookup for participants that connect without a name."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol
from urllib.parse import quote

import httpx
import yaml


logger = logging.getLogger(__name__)


class UserDirectoryError(RuntimeError):
    """Raised when the user directory cannot answer a lookup."""


class UserDirectory(Protocol):
    async def resolve(self, user_id: str) -> Optional[str]:
        ...

    async def close(self) -> None:
        ...


def display_name(record: dict) -> Optional[str]:
    if not isinstance(record, dict):
        return None
    if isinstance(record.get("user"), dict):
        record = record["user"]
    first = str(record.get("firstName") or "").strip()
    last = str(record.get("lastName") or "").strip()
    full = f"{first} {last}".strip()
    if full:
        return full
    name = record.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


class NullUserDirectory:
    async def resolve(self, user_id: str) -> Optional[str]:
        return None

    async def close(self) -> None:
        pass


class StaticUserDirectory:
    def __init__(self, users: Optional[Dict[str, str]] = None) -> None:
        self.users: Dict[str, str] = dict(users or {})

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "StaticUserDirectory":
        users: Dict[str, str] = {}
        for r in records or []:
            if isinstance(r, dict) and r.get("id") is not None:
                name = display_name(r)
                if name:
                    users[str(r["id"])] = name
        return cls(users)

    @classmethod
    def from_yaml(cls, path: Path) -> "StaticUserDirectory":
        if not path.exists():
            return cls()
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not read user directory %s: %s", path, exc)
            return cls()
        if isinstance(data, dict):
            data = data.get("users")
        if not isinstance(data, list):
            return cls()
        return cls.from_records(data)

    async def resolve(self, user_id: str) -> Optional[str]:
        return self.users.get(user_id)

    async def close(self) -> None:
        pass


class HTTPUserDirectory:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(self, user_id: str) -> Optional[dict]:
        try:
            r = await self._client.get(f"/api/users/{quote(user_id, safe='')}")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise UserDirectoryError(f"User lookup failed: {exc}") from exc
        if r.status_code == 404:
            return None
        if r.status_code >= 400:
            raise UserDirectoryError(f"User lookup failed ({r.status_code})")
        try:
            return r.json()
        except ValueError as exc:
            raise UserDirectoryError("User lookup returned invalid JSON") from exc

    async def resolve(self, user_id: str) -> Optional[str]:
        try:
            record = await self.fetch(user_id)
        except UserDirectoryError as exc:
            logger.warning("%s (user %s)", exc, user_id)
            return None
        if record is None:
            return None
        return display_name(record)
