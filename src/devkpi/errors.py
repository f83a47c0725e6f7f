"""Custom exception types for the developer KPI engine."""


class KPIEngineError(Exception):
    """Base exception for all recoverable KPI engine errors."""


class ConfigurationError(KPIEngineError):
    """Raised when runtime configuration values are missing or invalid."""


class InvalidConfigError(ConfigurationError):
    """Raised when scoring weights or bug penalties are out of range."""


class AuthenticationError(KPIEngineError):
    """Raised when tracker credentials are unavailable or rejected."""


class ApiError(KPIEngineError):
    """Raised when a tracker API request fails or returns an unexpected response."""


class NotFoundError(KPIEngineError):
    """Raised when a referenced developer (or team) does not exist."""


class DataValidationError(KPIEngineError):
    """Raised when record payloads or computed KPI data do not meet expected constraints."""


class InvalidStatusError(DataValidationError):
    """Raised for an unrecognized ticket status string."""


class InvalidComplexityError(DataValidationError):
    """Raised for an unrecognized ticket complexity string."""


class InvalidSeverityError(DataValidationError):
    """Raised for an unrecognized bug severity string."""


class InvalidBugTypeError(DataValidationError):
    """Raised for an unrecognized bug type string."""


class InvalidTrendError(DataValidationError):
    """Raised for an unrecognized KPI trend string."""
