"""
Logging configuration for rsyslog_backend command line tools.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorama

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level column for terminals."""

    COLORS = {
        'DEBUG': colorama.Fore.CYAN,
        'INFO': colorama.Fore.GREEN,
        'WARNING': colorama.Fore.YELLOW,
        'ERROR': colorama.Fore.RED,
        'CRITICAL': colorama.Fore.RED + colorama.Style.BRIGHT,
    }

    RESET = colorama.Style.RESET_ALL

    def format(self, record: logging.LogRecord) -> str:
        formatted_message = super().format(record)
        if record.levelname in self.COLORS:
            level_str = f"| {record.levelname} |"
            colored_level = f"{self.COLORS[record.levelname]}{level_str}{self.RESET}"
            formatted_message = formatted_message.replace(level_str, colored_level, 1)
        return formatted_message


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    handler: Optional[logging.Handler] = None
) -> logging.Logger:
    """
    Set up the root logger.

    Args:
        debug: If True, set log level to DEBUG, otherwise INFO.
        log_file: Optional path of a file that also receives every record.
        handler: Optional extra handler, typically an RsyslogHandler.

    Returns:
        The configured root logger.
    """
    colorama.init()
    log_level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    if handler is not None:
        root_logger.addHandler(handler)

    root_logger.debug(f"Logging initialized. Level: {logging.getLevelName(log_level)}")
    return root_logger
