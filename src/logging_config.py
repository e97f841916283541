import logging
import logging.handlers
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    console: bool = True,
) -> None:
    """Configure logging for the bank game engine.

    Game events go to ``logs/bank_game.log`` (rotated at 5MB, 3 backups)
    at DEBUG, so every ledger append is on file, and to the console at
    ``log_level``.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return  # Already configured

    log_dir = log_dir or Path(__file__).parent.parent / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / "bank_game.log", maxBytes=5 * 1024 * 1024, backupCount=3
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    logging.getLogger(__name__).info(
        "Logging initialized (level=%s, dir=%s)", log_level, log_dir
    )
