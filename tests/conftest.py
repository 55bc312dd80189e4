"""Shared test fixtures."""

import pytest

import lightningd_adapter.core.events.base as events_base
import lightningd_adapter.utils.config as config_module
from lightningd_adapter.utils.config import Settings


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment's .env and the real node."""
    return Settings(
        _env_file=None,
        rpc_file=tmp_path / "lightning-rpc",
        request_minimum="1MSAT",
        send_minimum="1MSAT",
        send_timeout=30,
        send_riskfactor=10,
        send_exemptfee="5000MSAT",
    )


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop the process-wide settings and event bus between tests."""
    config_module._settings = None
    events_base._event_bus = None
    yield
    config_module._settings = None
    events_base._event_bus = None
