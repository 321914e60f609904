import logging
import sys

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "vpk_engine"
LOG_FORMAT = '%(timestamp)s %(level)s %(name)s %(module)s %(lineno)d %(message)s'


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON log lines tagged with the service name and source location."""
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault('service', SERVICE_NAME)
        if not log_record.get('timestamp'):
            log_record['timestamp'] = record.created
        level = log_record.get('level') or record.levelname
        log_record['level'] = level.upper()
        log_record['module'] = record.module
        log_record['lineno'] = record.lineno
        log_record['pathname'] = record.pathname


def _has_json_handler(logger: logging.Logger) -> bool:
    return any(isinstance(h.formatter, CustomJsonFormatter) for h in logger.handlers)


def setup_logging(log_level_str: str = "INFO") -> None:
    """
    Configures structured JSON logging for the engine and the vpk-score CLI.

    Safe to call more than once; the JSON handler is only added the first time.
    Unknown level names fall back to INFO.
    """
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if _has_json_handler(root_logger):
        root_logger.debug(f"Log level updated to {logging.getLevelName(log_level)}")
        return

    # stderr keeps stdout free for CLI output
    log_handler = logging.StreamHandler(sys.stderr)
    log_handler.setFormatter(CustomJsonFormatter(LOG_FORMAT))
    root_logger.addHandler(log_handler)
    root_logger.debug(f"Structured JSON logging configured with level: {logging.getLevelName(log_level)}")
