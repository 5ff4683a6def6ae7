"""Console logging for the qibla package."""

import logging

import colorlog

HANDLER_NAME = "qibla-console"


def _console_handler(color: str) -> logging.Handler:
    handler = colorlog.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "thin_" + color,
                "INFO": color,
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    return handler


def setup_logging(logger_name: str = "qibla", level: str = "INFO", color: str = "white") -> logging.Logger:
    """
    Route logger_name (and its qibla.* children) to a colored console handler.

    Calling it again only changes the level; the handler is attached once.
    Raises ValueError for an unknown level name.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)
    handler = next((h for h in logger.handlers if h.get_name() == HANDLER_NAME), None)
    if handler is None:
        handler = _console_handler(color)
        logger.addHandler(handler)
    handler.setLevel(numeric_level)
    return logger
