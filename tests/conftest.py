"""Test configuration and fixtures."""

import pytest

from translation_host.config import Settings, get_settings
from translation_host.diagnostics import Diagnostics, set_diagnostics
from translation_host.drivers.base import Window
from tests.fakes import FakeSurfaceHost, FakeTimerHost


@pytest.fixture(autouse=True)
def _reset_globals(monkeypatch, tmp_path):
    """Keep tests independent of the host environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TRANSLATION_HOST_CONFIG_FILE", raising=False)
    get_settings.cache_clear()
    set_diagnostics(None)
    yield
    get_settings.cache_clear()
    set_diagnostics(None)


@pytest.fixture
def test_settings() -> Settings:
    """Small pool, verbose diagnostics."""
    return Settings(
        surface_pool={"capacity": 2},
        logging={"level": 5},
    )


@pytest.fixture
def diagnostics() -> Diagnostics:
    return Diagnostics(max_level=5)


@pytest.fixture
def window() -> Window:
    return Window(window_id="win-test", kind="navigator:browser")


@pytest.fixture
def surface_host(window: Window) -> FakeSurfaceHost:
    return FakeSurfaceHost(recent=window)


@pytest.fixture
def timer_host() -> FakeTimerHost:
    return FakeTimerHost()
