"""Domain errors raised by the service layer.

Every error carries the HTTP status it maps to; ``leadflow.main`` registers a
single handler that renders them as ``{"detail": message}``.
"""


class CRMError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CRMError):
    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class NotFoundError(CRMError):
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ForbiddenError(CRMError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class DuplicateTargetError(CRMError):
    status_code = 400

    def __init__(self, message: str = "Target already exists for this period"):
        super().__init__(message)


class PersistenceError(CRMError):
    status_code = 500

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)
