"""
Logging Configuration Module

Centralized logging configuration for the car analysis service. Conversation
text reaches the logs through the orchestrator, so the console handler
carries a PII redaction filter by default.
"""

import logging
import sys
from typing import Optional
from car_analysis.security.pii_redactor import PIIRedactionFilter


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    enable_pii_redaction: bool = True
) -> logging.Logger:
    """
    Configure application logging with PII redaction.

    Call once at application startup. Sets up:
    - Console output with structured formatting
    - Automatic PII redaction (if enabled)
    - Consistent log levels across the application

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom format string. If None, uses default structured format.
        enable_pii_redaction: Whether to enable automatic PII redaction (default: True)

    Returns:
        Configured root logger instance

    Example:
        >>> logger = setup_logging(log_level="INFO", enable_pii_redaction=True)
        >>> logger.info("Logging configured successfully")
    """
    if log_format is None:
        log_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '%(filename)s:%(lineno)d - %(message)s'
        )

    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format, datefmt='%Y-%m-%d %H:%M:%S'))

    if enable_pii_redaction:
        console_handler.addFilter(PIIRedactionFilter())

    root_logger.addHandler(console_handler)

    if enable_pii_redaction:
        root_logger.info("PII redaction filter enabled for all logs")

    # Chatty client libraries stay at WARNING unless we are debugging
    if level > logging.DEBUG:
        for noisy in ("httpx", "httpcore", "openai"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger("car_analysis").setLevel(level)

    return root_logger


def get_logger(name: str = "car_analysis") -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Loggers inherit the PII redaction filter through the root handler once
    setup_logging() has been called.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("User email: user@example.com")  # Auto-redacted to [EMAIL_REDACTED]
    """
    return logging.getLogger(name)
