import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_handler: logging.Handler | None = None


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    global _handler

    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_handler)

    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        logging.getLogger(__name__).warning("Unknown LOG_LEVEL %s, using INFO", level)
        resolved = logging.INFO
    root.setLevel(resolved)
