"""
Custom exceptions for better error handling and user feedback
"""
from typing import Any, List, Optional


class APIError(Exception):
    """Base class for errors rendered as a JSON error body"""
    status_code = 500
    code = "internal_server_error"

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationFailed(APIError):
    status_code = 400
    code = "validation_error"


class Unauthenticated(APIError):
    status_code = 401
    code = "unauthorized"


class Forbidden(APIError):
    status_code = 403
    code = "forbidden"

    def __init__(self, message: str = "Forbidden: Insufficient role"):
        super().__init__(message)


class NotFound(APIError):
    status_code = 404
    code = "not_found"


class Conflict(APIError):
    """Uniqueness or reference violation; reported as a bad request"""
    status_code = 400
    code = "conflict"


class TooManyRequests(APIError):
    status_code = 429
    code = "too_many_requests"


class InternalError(APIError):
    status_code = 500
    code = "internal_server_error"

    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message)


class InvalidToken(Exception):
    """Raised by the token codec for bad signatures, malformed or expired tokens"""
    pass


class ImageValidationError(Exception):
    """Base class for image validation errors"""
    pass


class ImageTooLargeError(ImageValidationError):
    """Raised when uploaded image exceeds size limit"""

    def __init__(self, max_size_mb: int):
        self.max_size_mb = max_size_mb
        super().__init__(
            f"Image file is too large. Maximum size allowed is {max_size_mb}MB.")


class UnsupportedImageFormatError(ImageValidationError):
    """Raised when uploaded file is not a valid image format"""

    def __init__(self):
        super().__init__(
            "The uploaded file is not a valid image. Please upload a JPG, PNG, GIF or WebP image.")


class CorruptedImageError(ImageValidationError):
    """Raised when image file is corrupted or unreadable"""

    def __init__(self):
        super().__init__(
            "The image file appears to be corrupted or damaged. Please try uploading a different image.")
