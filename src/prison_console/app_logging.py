"""Logging configuration helpers."""

import logging

# httpx logs every request line at INFO, including query strings.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str | int = logging.INFO) -> None:
    """Attach one stream handler to the ``prison_console`` logger tree.

    ``level`` accepts a name such as ``"DEBUG"``; unknown names fall back to INFO.
    """
    if isinstance(level, str):
        resolved = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    else:
        resolved = level
    logger = logging.getLogger("prison_console")
    logger.setLevel(resolved)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
