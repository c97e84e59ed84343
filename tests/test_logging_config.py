import logging

from office_hours.logging_config import HANDLER_NAME, configure_logging


def test_configure_logging_adds_one_console_handler():
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    try:
        configure_logging("DEBUG")
        configure_logging("DEBUG")

        ours = [h for h in root.handlers if h.get_name() == HANDLER_NAME]
        assert len(ours) == 1
        assert root.level == logging.DEBUG
    finally:
        root.handlers = before
        root.setLevel(level)
