import logging
from logging.handlers import TimedRotatingFileHandler
import os

DEFAULT_LOG_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'logs'))
LOG_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'

file_handler = None

def setup_logging(log_dir=None, level="INFO", log_name="guard.log"):
    global file_handler
    log_dir = os.path.abspath(log_dir or DEFAULT_LOG_DIR)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, log_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
    formatter = logging.Formatter(LOG_FORMAT)
    # Close previous file handler if it exists
    if file_handler:
        file_handler.close()
        file_handler = None
    # Daily rotation, keep 14 days
    file_handler = TimedRotatingFileHandler(log_file, when="midnight", interval=1, backupCount=14)
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.handlers = [file_handler, stream_handler]
    root_logger.info("[BOOT] Guard logging initialized and writing to %s", log_file)
    return log_file

def close_logging():
    global file_handler
    if file_handler:
        logging.getLogger().removeHandler(file_handler)
        file_handler.close()
        file_handler = None
