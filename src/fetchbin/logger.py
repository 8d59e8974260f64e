import logging
import sys


class Colors:
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"


class ColorFormatter(logging.Formatter):
    COLOR_MAP = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.RED + Colors.BOLD,
    }

    def __init__(self, fmt=None, use_color=True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record):
        message = super().format(record)
        if not self.use_color:
            return message
        color = self.COLOR_MAP.get(record.levelno, Colors.RESET)
        return f"{color}{message}{Colors.RESET}"


def setup_logger(name="fetchbin", level=logging.INFO):
    logger = logging.getLogger(name)
    # Prevent adding multiple handlers in case of repeated calls
    if not logger.handlers:
        logger.setLevel(level)
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(ColorFormatter("%(message)s", use_color=sys.stderr.isatty()))
        logger.addHandler(ch)
    return logger


def set_level(level, name="fetchbin"):
    """Adjust the level of the shared logger (used by -v / -q)."""
    logging.getLogger(name).setLevel(level)
