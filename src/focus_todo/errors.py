"""Exception hierarchy shared by the services and the HTTP layer."""


class FocusTodoError(Exception):
    """Base class for application errors."""

    status_code = 500
    error_type = "application_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(FocusTodoError):
    """Client input was rejected before any write."""

    status_code = 400
    error_type = "validation_error"


class NotFoundError(FocusTodoError):
    """Entity does not exist or belongs to another user."""

    status_code = 404
    error_type = "not_found"


class AccessDeniedError(FocusTodoError):
    """Entity exists but the caller may not touch it."""

    status_code = 403
    error_type = "access_denied"


class AiProcessingError(FocusTodoError):
    """The language model call or its response parsing failed."""

    status_code = 502
    error_type = "ai_processing_error"
