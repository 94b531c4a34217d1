from dataclasses import FrozenInstanceError

import pytest

from osc_bridge.endpoints import (
    DeploymentMode,
    is_known_mode,
    parse_mode,
    resolve_endpoints,
)


def test_resolve_live_uses_live_relay_and_port():
    config = resolve_endpoints("live")

    assert config.mode is DeploymentMode.LIVE
    assert config.relay_url == "wss://tetris.outernetglobal.com"
    assert config.datagram_port == 9001
    assert config.multicast_port == 9000


def test_resolve_test_mode():
    config = resolve_endpoints("test")

    assert config.relay_url == "wss://ct-test.outernetglobal.com"
    assert config.datagram_port == 8999


def test_resolve_defaults_to_dev():
    dev = resolve_endpoints("dev")

    assert resolve_endpoints() == dev
    assert resolve_endpoints(None) == dev
    assert resolve_endpoints("") == dev
    assert resolve_endpoints("staging") == dev
    assert dev.relay_url == "http://localhost:5056/"
    assert dev.target() == ("127.0.0.1", 8998)


def test_resolve_is_idempotent():
    for tag in ("dev", "test", "live", "bogus"):
        assert resolve_endpoints(tag) == resolve_endpoints(tag)


def test_modes_have_distinct_endpoints():
    configs = {resolve_endpoints(mode) for mode in DeploymentMode}

    assert len(configs) == 3
    assert len({config.relay_url for config in configs}) == 3


def test_parse_mode_is_case_insensitive():
    assert parse_mode(" LIVE ") is DeploymentMode.LIVE
    assert parse_mode(DeploymentMode.TEST) is DeploymentMode.TEST
    assert is_known_mode("Test")
    assert not is_known_mode("prod")
    assert not is_known_mode(None)


def test_deployment_config_is_immutable():
    config = resolve_endpoints("dev")

    with pytest.raises(FrozenInstanceError):
        config.datagram_port = 1  # type: ignore[misc]


def test_target_selects_multicast_group():
    config = resolve_endpoints("live")

    assert config.target(multicast=True) == ("239.255.255.11", 9000)
    assert config.target(multicast=False) == ("10.32.23.11", 9001)
