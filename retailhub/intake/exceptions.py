class IntakeError(Exception):
    """Base class for purchase intake errors"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class CollaboratorError(IntakeError):
    """A call to the retailhub API failed (transport error or non-2xx response)"""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def is_not_found(self):
        return self.status_code == 404


class SubmissionBlocked(IntakeError):
    """The form failed validation; nothing was sent"""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class SubmissionFailed(IntakeError):
    """Creating a product, variant or the invoice failed during submit"""


class ProductResolutionRequired(IntakeError):
    """Typed product names match nothing in the catalog and the form is set to ask first"""

    def __init__(self, names):
        names = list(names)
        super().__init__(f"Products not found in catalog: {', '.join(names)}")
        self.names = names


class IntakeClosed(IntakeError):
    """The form was already submitted"""
