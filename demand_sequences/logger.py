import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(filename)s:%(lineno)d: %(message)s"


def setup_logger(name: str, log_file: Optional[str] = None,
                 console_level=logging.INFO, file_level=logging.DEBUG) -> logging.Logger:
    """
    Return the named logger with a stdout handler and an optional file handler.

    Stage-level DEBUG messages only reach the file; the console shows INFO and up.
    Handlers are attached once per name, so importing a module twice does not
    duplicate output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(min(console_level, file_level))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # let the root logger (and pytest's caplog) see records too
    logger.propagate = True

    return logger
