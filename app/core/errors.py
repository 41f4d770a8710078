"""Application failure kinds raised by services and mapped to responses in app.api.errors."""


class AppError(Exception):
    reason = "internal"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    reason = "validation_error"
    default_message = "Invalid request"


class TooManyFiles(ValidationError):
    reason = "too_many_files"
    default_message = "Too many files"


class Conflict(AppError):
    reason = "conflict"
    default_message = "Resource already exists"


class Unauthenticated(AppError):
    reason = "unauthenticated"
    default_message = "Authentication required"


class InvalidCredentials(Unauthenticated):
    reason = "invalid_credentials"
    default_message = "Invalid email or password"


class Forbidden(AppError):
    reason = "forbidden"
    default_message = "Not allowed"


class NotFound(AppError):
    reason = "not_found"
    default_message = "Not found"


class UserNotFound(NotFound):
    reason = "user_not_found"
    default_message = "User not found"


class UnsupportedMediaType(AppError):
    reason = "unsupported_media_type"
    default_message = "Only image files can be uploaded (jpg, png, gif, webp)"


class PayloadTooLarge(AppError):
    reason = "payload_too_large"
    default_message = "File too large"


class UploadFailed(AppError):
    reason = "upload_failed"
    default_message = "Image upload failed"


class StoreUnavailable(AppError):
    reason = "store_unavailable"
    default_message = "Database unavailable"


class Internal(AppError):
    pass
