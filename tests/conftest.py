"""
Shared fixtures for presence server tests
"""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from exam_presence.config import Config, UserDirectoryConfig
from exam_presence.core.events import BroadcastHub
from exam_presence.core.lifecycle import ConnectionLifecycleManager
from exam_presence.core.registry import ConnectionRegistry
from exam_presence.core.session import SessionStateMachine
from exam_presence.integrations.directory import StaticUserDirectory
from exam_presence.main import create_app


class RecordingObserver:
    """Collects every frame the hub publishes to it."""

    def __init__(self):
        self.messages = []

    def send(self, message):
        self.messages.append(message)

    def of_type(self, event_type):
        return [m["data"] for m in self.messages if m["type"] == event_type]

    @property
    def types(self):
        return [m["type"] for m in self.messages]


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def hub(registry):
    return BroadcastHub(registry)


@pytest.fixture
def observer(hub):
    obs = RecordingObserver()
    hub.add(obs)
    return obs


@pytest.fixture
def session(registry, hub):
    return SessionStateMachine(registry, hub)


@pytest.fixture
def directory():
    return StaticUserDirectory({"s2": "Bobur Karimov"})


@pytest.fixture
def lifecycle(session, hub, directory):
    return ConnectionLifecycleManager(session, hub, directory)


@pytest.fixture
def config(tmp_path: Path):
    return Config(
        bind="127.0.0.1",
        port=5000,
        log_level="debug",
        config_dir=tmp_path,
        cors_origins=["*"],
        ping_interval=25.0,
        ping_timeout=60.0,
        user_directory=UserDirectoryConfig(url=None, token=None, timeout=5.0),
    )


@pytest.fixture
def app(config, directory):
    return create_app(config, directory=directory)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
