import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure the root logger once. Level comes from LOG_LEVEL (default INFO).
    Calling it again only updates the level.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not any(getattr(h, "_floussly", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._floussly = True
        root.addHandler(handler)

    # werkzeug request lines are noisy at INFO
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
