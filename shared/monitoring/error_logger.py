"""
Error Logging System with File Storage

Error boundary for the REST surface:
- Logs to a rotating text file and to a JSON-lines file
- Returns structured, caller-safe error data
- Caller-facing messages never include internals
"""

import json
import logging
import traceback
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any


class ErrorLogger:
    """Centralized error logging with file storage"""

    def __init__(self, log_dir: str = "./logs"):
        """
        Initialize error logger.

        Args:
            log_dir: Directory for log files
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.error_log_file = self.log_dir / "errors.log"
        self.json_log_file = self.log_dir / "errors.json"

        self.logger = logging.getLogger("carepulse.error_boundary")
        self.logger.setLevel(logging.WARNING)
        self.logger.propagate = False
        self.logger.handlers.clear()

        # 10MB per file, keep 10
        file_handler = RotatingFileHandler(
            self.error_log_file, maxBytes=10 * 1024 * 1024, backupCount=10, encoding="utf-8"
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        self.logger.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.ERROR)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        self.logger.addHandler(console_handler)

    def log_error(
        self,
        error: Exception,
        context: dict[str, Any] | None = None,
        user_message: str | None = None,
        level: int = logging.ERROR,
    ) -> dict[str, Any]:
        """
        Log an error with context and return structured error data.

        Args:
            error: The exception that occurred
            context: Additional context (endpoint, method, provider, ...)
            user_message: Caller-safe error message
            level: Logging level for the text log

        Returns:
            Structured error data for API response
        """
        error_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error_type": type(error).__name__,
            "error_message": str(error),
            "traceback": "".join(traceback.format_exception(error)),
            "context": context or {},
            "user_message": user_message or "An unexpected error occurred",
        }

        self.logger.log(
            level,
            f"Error: {error_data['error_type']} - {error_data['error_message']}\n"
            f"Context: {json.dumps(error_data['context'], indent=2, default=str)}\n"
            f"Traceback:\n{error_data['traceback']}",
        )
        self._log_json(error_data)

        return {
            "error": error_data["error_type"],
            "message": error_data["user_message"],
            "timestamp": error_data["timestamp"],
            "context": {
                k: v for k, v in error_data["context"].items() if k in ["endpoint", "method"]
            },
        }

    def _log_json(self, error_data: dict[str, Any]):
        """Append error data to the JSON-lines log file"""
        try:
            with open(self.json_log_file, "a", encoding="utf-8") as f:
                json.dump(error_data, f, default=str)
                f.write("\n")
        except OSError as e:
            self.logger.error(f"Failed to write to JSON log: {e}")

    def log_database_error(
        self, error: Exception, operation: str, table: str | None = None, **kwargs
    ) -> dict[str, Any]:
        """Log database-specific errors"""
        context = {"operation": operation, "table": table, "error_category": "database", **kwargs}

        user_message = (
            "The recommendation store is temporarily unavailable. "
            "Please try again in a moment."
        )

        return self.log_error(error, context, user_message)


_error_logger: ErrorLogger | None = None


def get_error_logger(log_dir: str | None = None) -> ErrorLogger:
    """Get or create the process-wide error logger"""
    global _error_logger
    if _error_logger is None:
        if log_dir is None:
            from shared.config.settings import get_settings

            log_dir = get_settings().LOG_DIR
        _error_logger = ErrorLogger(log_dir)
    return _error_logger
