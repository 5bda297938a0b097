import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "PlayerAgent"


def setup_logger(name=LOGGER_NAME, log_file="player_agent.log", level=logging.INFO):
    """
    Sets up the application logger with console and rotating file handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent adding handlers multiple times
    if logger.hasHandlers():
        return logger

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File Handler (Rotating)
    try:
        home = os.getenv("PLAYER_AGENT_HOME", os.path.join(os.path.expanduser("~"), ".player_agent"))
        log_dir = os.path.join(home, "logs")
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, log_file), maxBytes=5*1024*1024, backupCount=3
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except Exception as e:
        print(f"Failed to setup file logging: {e}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger of the application logger, e.g. get_logger(__name__)."""
    return log.getChild(name.rsplit(".", 1)[-1])


log = setup_logger()
