"""
Structured logging for the project database.
Record writes, collection I/O, vector sync and integrity checks all go through here.
"""

import logging
import os
from typing import Any, Dict, List, Optional


class StructuredLogger:
    """Structured logger for data-layer operations."""

    def __init__(self, name: str = "projectdb"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("PROJECTDB_LOG_LEVEL", "INFO").upper())

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_level(self, level: str):
        self.logger.setLevel(level.upper())

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None,
                      level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_record_operation(self, operation: str, collection: str, record_id: str,
                             status: str = "success", details: Dict[str, Any] = None):
        """Log an insert/update/delete/transition against a collection."""
        log_details = {"collection": collection, "record_id": record_id}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation(f"record.{operation}", status, log_details, level=level)

    def log_collection_io(self, operation: str, collection: str, record_count: int,
                          status: str = "success", details: Dict[str, Any] = None):
        """Log a whole-collection load or save."""
        log_details = {"collection": collection, "record_count": record_count}
        if details:
            log_details.update(details)

        level = logging.DEBUG if status == "success" else logging.ERROR
        self.log_operation(f"storage.{operation}", status, log_details, level=level)

    def log_vector_operation(self, operation: str, record_id: str, details: Dict[str, Any] = None,
                             status: str = "success"):
        """Log a vector operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        level = logging.DEBUG if status == "success" else logging.WARNING
        self.log_operation(f"vector.{operation}", status, log_details, level=level)

    def log_sync_progress(self, phase: str, current: Optional[int] = None, total: Optional[int] = None,
                          entity_type: Optional[str] = None):
        """Log startup embedding sync progress."""
        log_details = {"phase": phase}
        if current is not None and total is not None:
            log_details["progress"] = f"{current}/{total}"
        if entity_type:
            log_details["entity_type"] = entity_type

        self.log_operation("embedding.sync", phase, log_details)

    def log_schema_validation_error(self, operation: str, errors: List[Any], type_name: str = None,
                                    record_id: str = None):
        """Log schema validation errors with sanitized details."""
        # Field values never reach the log, only locations and messages
        sanitized_errors = []
        for error in errors:
            if isinstance(error, dict):
                sanitized_error = error.copy()
                for field in ['input', 'value']:
                    if field in sanitized_error:
                        sanitized_error[field] = "[REDACTED]"
                sanitized_errors.append(sanitized_error)
            else:
                sanitized_errors.append(str(error)[:100])

        log_details = {
            "operation": operation,
            "errors": sanitized_errors,
            "error_count": len(sanitized_errors)
        }
        if type_name:
            log_details["type"] = type_name
        if record_id:
            log_details["record_id"] = record_id

        self.log_operation("schema_validation.error", "rejected", log_details, level=logging.WARNING)

    def log_integrity_report(self, valid: bool, violation_count: int, checked_relationships: int):
        """Log the outcome of an integrity pass."""
        log_details = {
            "violation_count": violation_count,
            "checked_relationships": checked_relationships
        }
        status = "valid" if valid else "violations_found"
        level = logging.INFO if valid else logging.WARNING
        self.log_operation("integrity.check", status, log_details, level=level)

    def info(self, message: str, extra: Dict[str, Any] = None):
        """Log info message."""
        if extra:
            message += f" - {extra}"
        self.logger.info(message)

    def warning(self, message: str, extra: Dict[str, Any] = None):
        """Log warning message."""
        if extra:
            message += f" - {extra}"
        self.logger.warning(message)

    def error(self, message: str, extra: Dict[str, Any] = None, exc_info: bool = False):
        """Log error message."""
        if extra:
            message += f" - {extra}"
        self.logger.error(message, exc_info=exc_info)

    def debug(self, message: str, extra: Dict[str, Any] = None):
        """Log debug message."""
        if extra:
            message += f" - {extra}"
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
