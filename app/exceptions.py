"""
Error taxonomy shared by the repository and the committee services.

Routes translate these into HTTP responses (see app/errors.py).
"""


class CommitteeError(Exception):
    """Base exception for committee operations"""

    status_code = 500

    def __init__(self, message, description=None):
        super().__init__(message)
        self.message = message
        self.description = description or message


class ValidationError(CommitteeError):
    """Raised when input fields are missing or malformed"""
    status_code = 400


class NotFoundError(CommitteeError):
    """Raised when a committee, draw or settlement row does not exist"""
    status_code = 404


class ConflictError(CommitteeError):
    """Raised when the request clashes with the current committee state"""
    status_code = 400


class InternalError(CommitteeError):
    """Raised when persistence fails unexpectedly"""
    status_code = 500
