"""Shared fixtures: a QCoreApplication for the session and a fresh scene."""
import sys

import pytest
from PySide6.QtCore import QCoreApplication

from nodeflow import FlowScene, Settings
from nodeflow.builtin_models import default_registry


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    yield app


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(tmp_path / "settings.json")


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def scene(registry, settings) -> FlowScene:
    return FlowScene(registry, settings)
