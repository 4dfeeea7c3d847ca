"""PairPlus exception hierarchy.

Each error carries the HTTP status it maps to at the endpoint boundary.
Errors marked non-public are reported to callers as a generic internal
error; their message is only logged.
"""


class PairPlusError(Exception):
    """Base exception for all PairPlus errors."""

    status_code = 500
    public = False

    def __init__(self, message: str = "", code: str = "PAIRPLUS_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AuthError(PairPlusError):
    """Raised when the identity token is missing or invalid."""

    status_code = 401
    public = True

    def __init__(self, message: str = "Auth token required"):
        super().__init__(message, code="AUTH_REQUIRED")


class ValidationError(PairPlusError):
    """Raised when a request is missing a field or names an unsupported platform."""

    status_code = 400
    public = True

    def __init__(self, message: str = "Missing required fields"):
        super().__init__(message, code="INVALID_REQUEST")


class ConfigError(PairPlusError):
    """Raised when a required secret or credential is not configured."""

    status_code = 500
    public = True

    def __init__(self, message: str = "Service not configured"):
        super().__init__(message, code="NOT_CONFIGURED")


class VerificationAuthorityError(PairPlusError):
    """Raised when a storefront call fails or returns an unexpected shape."""

    def __init__(self, message: str = "Verification authority request failed"):
        super().__init__(message, code="VERIFICATION_FAILED")


class PersistenceError(PairPlusError):
    """Raised when a document store operation fails."""

    def __init__(self, message: str = "Document store operation failed"):
        super().__init__(message, code="PERSISTENCE_FAILED")
