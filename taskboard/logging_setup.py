import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str | int = "INFO") -> None:
    """Attach a single stderr handler to the root logger.

    Safe to call more than once: the handler installed by an earlier call is
    replaced rather than duplicated.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_taskboard", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._taskboard = True
    root.addHandler(handler)
    root.setLevel(level)

    # Third-party chatter only when it matters.
    for noisy in ("urllib3", "pymongo", "google"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
