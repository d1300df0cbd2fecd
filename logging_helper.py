"""
Unified logging helper for consistent logging across the service.

This module provides a centralized logging system so the table engine, the
database layer and the HTTP routes all log with the same formatting.

Usage:
    from logging_helper import LoggingHelper, LogType

    # Get a logger instance
    logger = LoggingHelper.get_logger(LogType.MAIN)
    logger.info("Standard logging")

    # Use helper methods for common patterns
    LoggingHelper.log_error_with_trace("Operation failed", exception)
    LoggingHelper.log_user_action("Added filter", "table: tickets")
"""

import logging
import os
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


DEFAULT_DATA_DIR = '/config/ticket_desk'


class LogType(Enum):
    """Enum for different log types in the application."""
    MAIN = "ticket_desk"
    USER_ACTION = "ticket_desk.user_actions"


class LoggingHelper:
    """
    Unified logging helper for consistent logging across all modules.

    This class manages all loggers in the application and provides helper
    methods for common logging patterns to prevent duplicate/inconsistent logging.
    """

    _loggers = {}
    _initialized = False
    _log_dir = Path(DEFAULT_DATA_DIR)

    @classmethod
    def initialize(cls, log_dir: Optional[str] = None):
        """
        Initialize all loggers. Should be called once at application startup.

        Args:
            log_dir: Directory where log files will be stored
                     (defaults to TICKET_DESK_DATA_DIR)
        """
        if cls._initialized:
            return

        cls._log_dir = Path(log_dir or os.getenv('TICKET_DESK_DATA_DIR', DEFAULT_DATA_DIR))

        cls._loggers[LogType.MAIN] = cls._setup_main_logger()
        cls._loggers[LogType.USER_ACTION] = cls._setup_user_action_logger()

        cls._initialized = True

    @classmethod
    def get_logger(cls, log_type: LogType = LogType.MAIN) -> logging.Logger:
        """
        Get a logger instance by type.

        Args:
            log_type: The type of logger to retrieve

        Returns:
            The requested logger instance
        """
        if not cls._initialized:
            cls.initialize()
        return cls._loggers.get(log_type, cls._loggers[LogType.MAIN])

    @classmethod
    def get_child_logger(cls, name: str) -> logging.Logger:
        """
        Get a module logger that reports through the main logger's handlers.

        Args:
            name: Suffix appended to the main logger name (e.g. 'table_engine')

        Returns:
            Child logger of the main logger
        """
        return cls.get_logger(LogType.MAIN).getChild(name)

    # =============================================================================
    # Helper methods for common logging patterns (prevents duplicate logging)
    # =============================================================================

    @classmethod
    def log_error_with_trace(cls, message: str, exception: Exception,
                            log_type: LogType = LogType.MAIN):
        """
        Log an error with full traceback in a single call.

        Args:
            message: Error message to log
            exception: The exception that occurred
            log_type: Which logger to use
        """
        logger = cls.get_logger(log_type)
        logger.error(f"{message}: {exception}", exc_info=True)

    @classmethod
    def log_user_action(cls, action: str, details: Optional[str] = None):
        """
        Log user actions consistently with USER_ACTION tag.

        Args:
            action: The action performed
            details: Optional additional details
        """
        logger = cls.get_logger(LogType.USER_ACTION)
        message = action
        if details:
            message += f" - {details}"
        logger.info(message)

    # =============================================================================
    # Private logger setup methods
    # =============================================================================

    @classmethod
    def _setup_main_logger(cls) -> logging.Logger:
        """Configure and return the main application logger."""
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

        logger = logging.getLogger(LogType.MAIN.value)
        logger.setLevel(getattr(logging, log_level, logging.INFO))
        logger.handlers = []
        logger.propagate = False

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))
        logger.addHandler(console_handler)

        try:
            cls._log_dir.mkdir(parents=True, exist_ok=True)

            # File handler for all logs (with timestamp)
            file_handler = RotatingFileHandler(
                cls._log_dir / 'ticket_desk.log',
                maxBytes=10*1024*1024,  # 10MB
                backupCount=3,
                encoding='utf-8'
            )
            file_handler.setFormatter(
                logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s',
                                datefmt='%Y-%m-%d %H:%M:%S')
            )
            logger.addHandler(file_handler)

            # Separate error file handler
            error_handler = RotatingFileHandler(
                cls._log_dir / 'errors.log',
                maxBytes=10*1024*1024,  # 10MB
                backupCount=3,
                encoding='utf-8'
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(
                logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s',
                                datefmt='%Y-%m-%d %H:%M:%S')
            )
            logger.addHandler(error_handler)

        except Exception as e:
            logger.warning(f"Could not create file handlers: {e}")

        return logger

    @classmethod
    def _setup_user_action_logger(cls) -> logging.Logger:
        """Configure user action logger so view changes can be filtered out."""
        logger = logging.getLogger(LogType.USER_ACTION.value)
        logger.setLevel(logging.INFO)
        logger.handlers = []
        logger.propagate = False

        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[USER_ACTION] %(message)s'))
        logger.addHandler(handler)

        return logger


# Export convenience reference
logger = LoggingHelper.get_logger(LogType.MAIN)
