"""
Logging-Konfiguration für das ShadowFinder Backend.

Module holen sich ihren Logger mit ``logging.getLogger(__name__)``;
``setup_logging()`` wird einmal beim Start (main.py) aufgerufen.
"""

import logging

from . import config

_configured = False


class ConsoleFormatter(logging.Formatter):
    """Lesbares Konsolen-Format"""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(level=None):
    """
    Konfiguriert den ``shadowfinder`` Logger mit einem Konsolen-Handler.

    Weitere Aufrufe ändern nur noch das Level.
    """
    global _configured

    if level is None:
        level = getattr(logging, config.LOG_LEVEL, logging.INFO)

    logger = logging.getLogger("shadowfinder")
    logger.setLevel(level)

    if not _configured:
        console = logging.StreamHandler()
        console.setFormatter(ConsoleFormatter())
        logger.addHandler(console)
        _configured = True

    return logger
