import logging
from pathlib import Path
from typing import Optional

from core.interfaces import LoggerPort

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class LoggingAdapter(LoggerPort):

    def __init__(self, log_file: Optional[Path] = None, verbose: bool = False):
        handlers = [logging.StreamHandler()]
        if log_file is not None:
            handlers.append(logging.FileHandler(log_file))
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format=LOG_FORMAT,
            handlers=handlers,
        )
        self.logger = logging.getLogger("make_image")

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)

    def debug(self, message: str):
        self.logger.debug(message)
