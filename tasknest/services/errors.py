from __future__ import annotations


class TaskNestError(Exception):
    """Base class for errors the REST layer translates into a status code."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskNestError):
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(TaskNestError):
    status_code = 404
