"""
Shared error handling for the cacher library.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error payload format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class CacheException(Exception):
    """Base exception for cache operations."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as a plain dictionary."""
        return self.to_response().model_dump()


class NotFoundError(CacheException):
    """The requested key does not exist in the store."""

    def __init__(self, key: str, message: str = "key not found"):
        self.key = key
        super().__init__("KEY_NOT_FOUND", message, {"key": key})


class StoreError(CacheException):
    """The store reported a failure (connectivity, timeout, wrong type, ...)."""

    def __init__(self, operation: str, message: str = "Store error", details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__("STORE_ERROR", f"{operation}: {message}", details)


class ValueDecodeError(CacheException):
    """Stored bytes could not be coerced to the requested type."""

    def __init__(self, key: str, type_name: str, message: str = "Value decode failed"):
        self.key = key
        self.type_name = type_name
        super().__init__("VALUE_DECODE_ERROR", message, {"key": key, "type": type_name})


class ValueEncodeError(CacheException):
    """A value of an unsupported type was handed to put."""

    def __init__(self, type_name: str, message: str = "Value encode failed"):
        self.type_name = type_name
        super().__init__("VALUE_ENCODE_ERROR", message, {"type": type_name})


class EntityMarshalError(CacheException):
    """An entity could not be marshalled to or from JSON."""

    def __init__(self, message: str, cause: Exception, details: Optional[Dict[str, Any]] = None):
        self.cause = cause
        super().__init__("ENTITY_MARSHAL_ERROR", f"{message}: {cause}", details)


class EntityEncodeError(EntityMarshalError):
    """Entity serialization failed."""

    def __init__(self, cause: Exception, details: Optional[Dict[str, Any]] = None):
        super().__init__("error marshalling entity", cause, details)


class EntityDecodeError(EntityMarshalError):
    """Stored bytes are not a valid encoded entity."""

    def __init__(self, cause: Exception, details: Optional[Dict[str, Any]] = None):
        super().__init__("error unmarshalling entity", cause, details)
