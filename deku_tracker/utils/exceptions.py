"""
Exception hierarchy for the Deku Task Tracker.

Every error raised by the store, the configuration layer or the client
helpers derives from TrackerError. Each class carries the HTTP status the
API answers with, so routes translate failures in one place.

    TrackerError
    ├── ConfigurationError          bad setting value
    ├── ValidationError (400)       rejected input, nothing mutated
    │   ├── InvalidParameterError   blank text, unknown cycle token
    │   └── MissingParameterError
    ├── NotFoundError (404)
    │   └── TaskNotFoundError       id is neither a task nor a subtask
    ├── InvalidOperationError (409) conflicts with derived completion
    └── ResourceError (500)
        ├── PersistenceError        task file read/write failure
        └── NetworkError            tracker API unreachable from a client

Usage:
    from deku_tracker.utils.exceptions import TaskNotFoundError

    try:
        store.set_completion(task_id, True)
    except TaskNotFoundError as e:
        print(e.to_dict())
"""

from typing import Any, Dict, Optional


def _compact(**fields: Any) -> Dict[str, Any]:
    """Drop unset fields so error payloads only carry what is known."""
    return {key: value for key, value in fields.items() if value is not None}


class TrackerError(Exception):
    """Base class for tracker errors."""

    http_status = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """JSON body used for API error responses."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} ({', '.join(f'{k}={v}' for k, v in self.details.items())})"


class ConfigurationError(TrackerError):
    """A setting from config.properties or the environment is unusable."""

    def __init__(
        self,
        setting_name: str,
        message: str,
        expected_value: Optional[Any] = None,
        actual_value: Optional[Any] = None
    ):
        super().__init__(
            message=f"Setting '{setting_name}' {message}",
            error_code="CONFIG_ERROR",
            details=_compact(
                setting_name=setting_name,
                expected_value=None if expected_value is None else str(expected_value),
                actual_value=None if actual_value is None else str(actual_value),
            ),
        )
        self.setting_name = setting_name


# ----------------------------------------------------------------------------
# Input validation
# ----------------------------------------------------------------------------

class ValidationError(TrackerError):
    """Input was rejected before anything changed."""

    http_status = 400


class InvalidParameterError(ValidationError):

    def __init__(
        self,
        parameter_name: str,
        message: str,
        expected_type: Optional[str] = None,
        actual_value: Optional[Any] = None
    ):
        super().__init__(
            message=f"Invalid {parameter_name}: {message}",
            error_code="INVALID_PARAM",
            details=_compact(
                parameter_name=parameter_name,
                expected_type=expected_type or None,
                actual_value=None if actual_value is None else str(actual_value),
            ),
        )
        self.parameter_name = parameter_name


class MissingParameterError(ValidationError):

    def __init__(self, parameter_name: str, context: Optional[str] = None):
        where = f" for {context}" if context else ""
        super().__init__(
            message=f"'{parameter_name}' is required{where}",
            error_code="MISSING_PARAM",
            details=_compact(parameter_name=parameter_name, context=context),
        )
        self.parameter_name = parameter_name


# ----------------------------------------------------------------------------
# Lookups and conflicts
# ----------------------------------------------------------------------------

class NotFoundError(TrackerError):

    http_status = 404


class TaskNotFoundError(NotFoundError):
    """
    No entity has the given id.

    ``role`` names what the caller was looking for ("task", "parent task"),
    so adding a subtask under another subtask reads sensibly.
    """

    def __init__(self, entity_id: str, role: str = "task"):
        super().__init__(
            message=f"{role.capitalize()} not found: {entity_id}",
            error_code="NOT_FOUND",
            details={"id": entity_id, "role": role},
        )
        self.entity_id = entity_id
        self.role = role


class InvalidOperationError(TrackerError):
    """The request contradicts the completion model, e.g. toggling a parent."""

    http_status = 409

    def __init__(self, operation: str, message: str, entity_id: Optional[str] = None):
        super().__init__(
            message=f"Cannot {operation.replace('_', ' ')}: {message}",
            error_code="INVALID_OPERATION",
            details={"operation": operation, "id": entity_id},
        )
        self.operation = operation
        self.entity_id = entity_id


# ----------------------------------------------------------------------------
# Files and network
# ----------------------------------------------------------------------------

class ResourceError(TrackerError):
    pass


class PersistenceError(ResourceError):
    """The task file could not be read or written; the mutation was undone."""

    def __init__(
        self,
        file_path: str,
        operation: str,
        message: str,
        original_error: Optional[Exception] = None
    ):
        cause = f": {original_error}" if original_error else ""
        super().__init__(
            message=f"Could not {operation} {file_path} ({message}){cause}",
            error_code="PERSISTENCE_ERROR",
            details=_compact(
                file_path=file_path,
                operation=operation,
                original_error=str(original_error) if original_error else None,
            ),
        )
        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class NetworkError(ResourceError):
    """A client request failed in transport or got an unexpected status."""

    def __init__(
        self,
        url: str,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        status = f" [HTTP {status_code}]" if status_code else ""
        super().__init__(
            message=f"Request to {url} failed{status}: {message}",
            error_code="NETWORK_ERROR",
            details=_compact(
                url=url,
                status_code=status_code,
                original_error=str(original_error) if original_error else None,
            ),
        )
        self.url = url
        self.status_code = status_code
        self.original_error = original_error


__all__ = [
    "TrackerError",
    "ConfigurationError",
    "ValidationError",
    "InvalidParameterError",
    "MissingParameterError",
    "NotFoundError",
    "TaskNotFoundError",
    "InvalidOperationError",
    "ResourceError",
    "PersistenceError",
    "NetworkError",
]
