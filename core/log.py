# core/log.py
import json
import logging
from typing import Optional

from configurations.config import LOG_FILE, LOG_LEVEL


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key in ("user_id", "operation", "error_code", "execution_time_ms"):
            value = record.__dict__.get(key)
            if value is not None:
                log_record[key] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False, default=str)


def get_logger(name: str, log_file: Optional[str] = None) -> logging.Logger:
    """
    Return a module logger with the JSON stream handler attached once.
    A file handler is added when LOG_FILE (or log_file) is set.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(JSONFormatter())
        logger.addHandler(stream_handler)

        target = log_file or LOG_FILE
        if target:
            fh = logging.FileHandler(target)
            fh.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s"))
            logger.addHandler(fh)

    return logger
