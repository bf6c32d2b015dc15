"""Pytest fixtures for pyhanabi tests."""

import pytest

from pyhanabi import HanabiConfig, ModelId, SwitcherModel, SwitcherState, get_model


@pytest.fixture
def hvs100() -> SwitcherModel:
    """Return the HVS 100/110 model entry."""
    return get_model(ModelId.HVS100)


@pytest.fixture
def hvs2000() -> SwitcherModel:
    """Return the HVS 2000 model entry."""
    return get_model(ModelId.HVS2000)


@pytest.fixture
def switcher_state(hvs100: SwitcherModel) -> SwitcherState:
    """Create a SwitcherState seeded for the HVS 100."""
    return SwitcherState(hvs100)


@pytest.fixture
def fast_config() -> HanabiConfig:
    """Return a configuration with short reconnect delays."""
    return HanabiConfig(
        "127.0.0.1",
        ModelId.HVS100,
        reconnect_delay=0.05,
        first_run_delay=0.05,
        connect_timeout=1.0,
        ping_interval=None,
    )
