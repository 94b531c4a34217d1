import logging

import pytest

from osc_bridge.logging import configure_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("aiohttp.client").setLevel(logging.NOTSET)


def test_configure_logging_writes_timestamped_file(tmp_path, restore_root_logging):
    log_path = tmp_path / "logs" / "osc-bridge.log"

    configure_logging("debug", log_path=log_path)
    logging.getLogger("osc_bridge.test").info("Connected to relay")

    for handler in logging.getLogger().handlers:
        handler.flush()

    line = log_path.read_text(encoding="utf-8").strip()
    assert line.endswith("| INFO | osc_bridge.test | Connected to relay")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("aiohttp.client").level == logging.WARNING


def test_configure_logging_keeps_network_loggers_when_requested(restore_root_logging):
    logging.getLogger("aiohttp.client").setLevel(logging.NOTSET)

    configure_logging("INFO", log_network=True)

    assert logging.getLogger("aiohttp.client").level == logging.NOTSET
