"""
Custom exception classes for the Normaize application.
These allow us to differentiate between user errors (4xx) and system errors (5xx).
"""

class AppException(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

class ValidationError(AppException):
    """Raised when a request is rejected before any parsing work starts."""
    def __init__(self, message: str = "The request failed validation.", status_code: int = 400):
        super().__init__(message, status_code=status_code)

class UnsupportedFormatError(ValidationError):
    """Raised when no parser is registered for a file extension."""
    def __init__(self, message: str = "Unsupported file type."):
        super().__init__(message, status_code=415)

class ParseError(AppException):
    """Raised when file content is malformed for its format."""
    def __init__(self, message: str = "Failed to parse the uploaded file."):
        super().__init__(message, status_code=422)

class DatasetNotFoundError(AppException):
    """Raised when a dataset id is unknown."""
    def __init__(self, message: str = "Dataset not found."):
        super().__init__(message, status_code=404)

class OperationTimeoutError(AppException):
    """Raised when an operation exceeds its time budget."""
    def __init__(self, message: str = "The operation timed out."):
        super().__init__(message, status_code=504)

class AnalysisError(AppException):
    """Raised when an operation fails for an unexpected reason."""
    def __init__(self, message: str = "Failed to complete the operation."):
        super().__init__(message, status_code=500)
