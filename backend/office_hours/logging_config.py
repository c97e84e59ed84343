from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
HANDLER_NAME = "office_hours.console"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)

    # uvicorn --reload imports the app twice
    if any(h.get_name() == HANDLER_NAME for h in root.handlers):
        return

    console = logging.StreamHandler()
    console.set_name(HANDLER_NAME)
    console.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    root.addHandler(console)
