"""Logging for Dockyard with rich console output and an optional log file."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console()

LOG_DIR = Path("/var/log/dockyard")
LOG_FILE = LOG_DIR / "dockyard.log"
FALLBACK_LOG_FILE = Path("/tmp/dockyard.log")

_file_logging_configured = False


def setup_file_logging(log_file: str = None, verbose: bool = False):
    """Set up file logging for Dockyard operations.

    Args:
        log_file: Path to log file (defaults to /var/log/dockyard/dockyard.log)
        verbose: Enable debug-level logging

    Note:
        Falls back to /tmp if /var/log/dockyard is not writable.
    """
    global _file_logging_configured

    if _file_logging_configured:
        return

    target_log_file = Path(log_file) if log_file else LOG_FILE

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target_log_file)
    except OSError:
        target_log_file = FALLBACK_LOG_FILE
        file_handler = logging.FileHandler(target_log_file)

    root_logger = logging.getLogger("dockyard")
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True
    root_logger.info(f"Dockyard logging initialized: {target_log_file}")


def set_verbose(verbose: bool = True):
    """Switch every dockyard logger between INFO and DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("dockyard").setLevel(level)
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("dockyard") and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with console output.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler

    Note:
        File logging must be enabled separately via setup_file_logging()
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
