"""Error types raised by the services and mapped to HTTP responses in main.py."""

from typing import Dict, List, Optional


class ApiError(Exception):
    status_code = 500
    message = "Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_response(self) -> Dict:
        return {"success": False, "message": self.message}


class ValidationFailed(ApiError):
    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors

    def to_response(self) -> Dict:
        return {"success": False, "message": self.message, "errors": self.errors}


class InvalidFile(ApiError):
    status_code = 400
    message = "Invalid file"


class InvalidCredentials(ApiError):
    status_code = 401
    message = "Invalid credentials"


class Unauthorized(ApiError):
    status_code = 401
    message = "Not authorized to access this route"


class Forbidden(ApiError):
    status_code = 403
    message = "Not authorized to perform this action"


class RateLimited(ApiError):
    status_code = 429
    message = "Please wait before submitting another review"


class StorageUnavailable(ApiError):
    status_code = 500
    message = "Database unavailable"


class ServiceUnavailable(ApiError):
    status_code = 500
    message = "Image upload service not configured. Please set up Cloudinary or another storage service."


class UploadFailed(ApiError):
    status_code = 500
    message = "Image upload failed. Please check Cloudinary configuration."
