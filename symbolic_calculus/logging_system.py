"""
Logging System for the Symbolic Calculus Engine

Centralized logging with verbosity levels so that rewrite steps can be traced
in detail during development while normal use only reports fallbacks and
unsupported operations.
"""

import logging
import sys
from typing import Optional
from enum import Enum
from datetime import datetime


class LogLevel(Enum):
    """Enumeration of engine verbosity levels"""
    SILENT = 0      # No output
    MINIMAL = 1     # Warnings: fallbacks, unsupported functions
    MODERATE = 2    # Operation summaries
    DETAILED = 3    # Every rewrite step
    VERBOSE = 4     # All information including debug details


class SymbolicEngineLogger:
    """
    Centralized logger for the engine with level-aware formatting
    """

    def __init__(self, log_level: LogLevel = LogLevel.MINIMAL,
                 log_to_file: bool = False, log_file_path: Optional[str] = None):
        self.log_level = log_level
        self.log_to_file = log_to_file

        self.logger = logging.getLogger('symbolic_calculus')
        self.logger.setLevel(logging.DEBUG)
        self.logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

        if self.log_level != LogLevel.SILENT:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_to_file:
            if log_file_path is None:
                log_file_path = f"symbolic_calculus_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
            file_handler = logging.FileHandler(log_file_path)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def _should_log(self, required_level: LogLevel) -> bool:
        return self.log_level.value >= required_level.value

    def info(self, message: str, required_level: LogLevel = LogLevel.MODERATE):
        if self._should_log(required_level):
            self.logger.info(message)

    def step(self, operation_kind: str, rule_name: str, before: str, after: str):
        """Single rewrite step, shown from the detailed level"""
        if self._should_log(LogLevel.DETAILED):
            self.logger.info(f"STEP [{operation_kind}] {rule_name}: {before} -> {after}")

    def milestone(self, message: str):
        """Operation summaries - shown from the moderate level"""
        if self._should_log(LogLevel.MODERATE):
            self.logger.info(f"MILESTONE: {message}")

    def warning(self, message: str):
        """Warnings - shown from minimal level onwards"""
        if self._should_log(LogLevel.MINIMAL):
            self.logger.warning(message)

    def debug(self, message: str):
        """Debug information - only in verbose mode"""
        if self._should_log(LogLevel.VERBOSE):
            self.logger.debug(f"DEBUG: {message}")


# Global logger instance
_global_logger: Optional[SymbolicEngineLogger] = None


def get_logger() -> SymbolicEngineLogger:
    """Get or create the global logger instance"""
    global _global_logger
    if _global_logger is None:
        _global_logger = SymbolicEngineLogger()
    return _global_logger


def set_log_level(level: LogLevel):
    """Set the global logging level"""
    global _global_logger
    if _global_logger is None:
        _global_logger = SymbolicEngineLogger(log_level=level)
    else:
        _global_logger.log_level = level


def configure_logging(log_level: LogLevel = LogLevel.MINIMAL,
                      log_to_file: bool = False,
                      log_file_path: Optional[str] = None) -> SymbolicEngineLogger:
    """Configure the global logging system"""
    global _global_logger
    _global_logger = SymbolicEngineLogger(
        log_level=log_level,
        log_to_file=log_to_file,
        log_file_path=log_file_path
    )
    return _global_logger


# Convenience functions for common operations
def log_info(message: str, level: LogLevel = LogLevel.MODERATE):
    get_logger().info(message, level)


def log_step(operation_kind: str, rule_name: str, before: str, after: str):
    get_logger().step(operation_kind, rule_name, before, after)


def log_milestone(message: str):
    get_logger().milestone(message)


def log_warning(message: str):
    get_logger().warning(message)


def log_debug(message: str):
    get_logger().debug(message)
