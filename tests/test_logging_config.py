import logging

from catalog_engine.logging_config import LOG_FORMAT, setup_logging


def test_setup_logging_installs_one_handler() -> None:
    root = logging.getLogger()
    previous_level = root.level

    try:
        setup_logging("debug")
        setup_logging("debug")

        handlers = [h for h in root.handlers if h.name == "catalog_engine"]
        assert len(handlers) == 1
        assert handlers[0].formatter._fmt == LOG_FORMAT
        assert root.level == logging.DEBUG
        assert logging.getLogger("apscheduler").level == logging.INFO
    finally:
        for handler in [h for h in root.handlers if h.name == "catalog_engine"]:
            root.removeHandler(handler)
        root.setLevel(previous_level)
