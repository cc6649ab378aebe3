"""MadChef's logger module."""

import logging

from madchef.configs import (
    PROJECT_NAME,
    LOG_FILE_PATH,
    LOG_STREAM_LEVEL,
    LOG_FILE_LEVEL,
)


class MadChefLogger(object):
    """Process-wide logger. Instantiating it returns the shared ``logging.Logger``."""

    _instance = None

    @classmethod
    def _build_logger(cls):
        # CRITICAL + 1 effectively disables a handler (e.g., LOG_FILE_LEVEL=DISABLE)
        stream_level = getattr(logging, LOG_STREAM_LEVEL, logging.CRITICAL + 1)
        file_level = getattr(logging, LOG_FILE_LEVEL, logging.CRITICAL + 1)

        logger = logging.getLogger(PROJECT_NAME)
        logger.setLevel(min(stream_level, file_level, logging.CRITICAL))
        logger.propagate = False

        base_format = f"[%(name)s][%(levelname)s][{PROJECT_NAME}][pid=%(process)d]"

        if stream_level <= logging.CRITICAL:
            stream_handler = logging.StreamHandler()
            stream_handler.setLevel(stream_level)
            stream_handler.setFormatter(logging.Formatter(f"{base_format}[%(asctime)s] - %(message)s"))
            logger.addHandler(stream_handler)

        if file_level <= logging.CRITICAL:
            file_handler = logging.FileHandler(LOG_FILE_PATH, delay=True, mode="a+")
            file_handler.setLevel(file_level)
            file_handler.setFormatter(logging.Formatter(f"{base_format}[%(asctime)s][%(module)s] - %(message)s"))
            logger.addHandler(file_handler)

        return logger

    def __new__(cls, *args, **kwargs) -> logging.Logger:
        """Return the shared logger, building it on first use."""
        if not cls._instance:
            cls._instance = super(MadChefLogger, cls).__new__(cls)
            cls._instance._logger = MadChefLogger._build_logger()
        return cls._instance._logger
