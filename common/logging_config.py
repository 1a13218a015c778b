import logging
import os
import re
import sys
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class SensitiveDataFilter(logging.Filter):
    """Filter to mask credentials in log records."""

    # Scheme patterns run first so "Authorization: Basic <b64>" loses the credential, not the scheme
    PATTERNS = [
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(basic\s+)([A-Za-z0-9+/=]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(bearer\s+)([^\s,}\'\"]+)', re.IGNORECASE), r'\1***MASKED***'),
        (
            re.compile(r'(authorization["\']?\s*[:=]\s*["\']?(?:(?:basic|bearer)\s+)?)([^"\'}\s,]+)', re.IGNORECASE),
            r'\1***MASKED***'
        ),
        (re.compile(r'(\$2[aby]?\$\d{2}\$)([./A-Za-z0-9]{53})'), r'\1***MASKED***'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Mask sensitive data in the log message and its arguments."""
        if isinstance(record.msg, str):
            record.msg = self._mask_value(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask_value(arg) for arg in record.args)

        return True

    def _mask_value(self, value):
        if isinstance(value, str):
            for pattern, replacement in self.PATTERNS:
                value = pattern.sub(replacement, value)
        return value


def setup_logging(component_name: str, log_level: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for a component.

    Args:
        component_name: Root logger name of the component (e.g., 'fragments')
        log_level: DEBUG, INFO, WARNING or ERROR. Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(SensitiveDataFilter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name (typically __name__).

    Loggers under the 'fragments.' namespace inherit the handler installed
    by setup_logging('fragments').
    """
    return logging.getLogger(name)
