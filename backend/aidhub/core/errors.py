"""API error classes.

Every failure in the accounts subsystem is an APIError subclass carrying a
machine-readable code, a client-safe message, and an HTTP status. Exception
handlers in aidhub.main render them with the standard error envelope.

Token and session failures have internal subclasses (expired, wrong purpose,
bad signature, ...) so services and logs can tell them apart. The subclasses
reuse their parent's code and message; the HTTP response never
reveals which sub-case failed.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "VALIDATION_ERROR").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, password complexity failures, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class DuplicateEmailError(APIError):
    """Email already registered (409).

    Raised for any existing account with the same normalized email. The
    message is identical whether that account is confirmed or not.
    """

    def __init__(self) -> None:
        super().__init__(
            code="EMAIL_ALREADY_EXISTS",
            message="Email already registered",
            status_code=409,
        )


class InvalidCredentialsError(APIError):
    """Email or password wrong (401).

    Covers unknown email and wrong password with the same message so
    responses cannot be used to enumerate accounts.
    """

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(
            code="INVALID_CREDENTIALS",
            message=message,
            status_code=401,
        )


class AccountNotConfirmedError(APIError):
    """Password correct but email not confirmed yet (403)."""

    def __init__(self) -> None:
        super().__init__(
            code="ACCOUNT_NOT_CONFIRMED",
            message=(
                "Please confirm your email before signing in. "
                "Check your inbox for the confirmation token."
            ),
            status_code=403,
        )


class TokenInvalidError(APIError):
    """Verification token unknown, already used, or otherwise unusable (401)."""

    reason = "invalid"

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_TOKEN",
            message="Invalid or expired token",
            status_code=401,
        )


class TokenExpiredError(TokenInvalidError):
    """Verification token found but past its expiry."""

    reason = "expired"


class TokenPurposeMismatchError(TokenInvalidError):
    """Verification token found but issued for a different purpose."""

    reason = "purpose_mismatch"


class UnauthenticatedError(APIError):
    """Authentication required (401).

    Use when no valid session cookie was presented.
    """

    reason = "unauthenticated"

    def __init__(self) -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message="Authentication required",
            status_code=401,
        )


class MalformedSessionError(UnauthenticatedError):
    """Session cookie is not a well-formed credential."""

    reason = "malformed"


class InvalidSignatureError(UnauthenticatedError):
    """Session cookie signature does not verify with the server secret."""

    reason = "invalid_signature"


class SessionExpiredError(UnauthenticatedError):
    """Session cookie is past its encoded expiry."""

    reason = "expired"


class ForbiddenError(APIError):
    """Not allowed to access resource (403).

    Use when auth is valid but user lacks permission.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class AdminRequiredError(ForbiddenError):
    """Admin access required (403).

    Raised by the require_admin dependency when the user lacks the admin flag.
    """

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="ADMIN_REQUIRED",
            message="Admin access required",
            status_code=403,
        )
