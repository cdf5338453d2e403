"""Application-level exceptions."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class DuplicateHoldingError(AppError):
    """Raised when adding a holding for a fund code that is already held."""

    def __init__(self, fund_code: str):
        super().__init__(
            f"Fund {fund_code} is already in the holdings",
            code="DUPLICATE_HOLDING",
        )


class FetchError(AppError):
    """Raised when a valuation for one instrument could not be obtained."""

    def __init__(
        self,
        fund_code: str,
        message: str,
        code: str = "FETCH_ERROR",
        cause: Optional[BaseException] = None,
    ):
        self.fund_code = fund_code
        self.cause = cause
        super().__init__(f"{fund_code}: {message}", code=code)


class FetchTimeoutError(FetchError):
    """No completion arrived within the request timeout."""

    def __init__(self, fund_code: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            fund_code,
            f"request timed out after {timeout:g}s",
            code="FETCH_TIMEOUT",
        )


class MalformedResponseError(FetchError):
    """Provider payload could not be decoded into a valuation."""

    def __init__(self, fund_code: str, reason: str):
        self.reason = reason
        super().__init__(fund_code, f"malformed response: {reason}", code="MALFORMED_RESPONSE")


class TransportFailureError(FetchError):
    """Network-level failure reported by the transport."""

    def __init__(self, fund_code: str, cause: BaseException):
        super().__init__(
            fund_code,
            f"transport failure: {cause}",
            code="TRANSPORT_FAILURE",
            cause=cause,
        )


class PersistenceError(AppError):
    """Raised when a durable store write fails."""

    def __init__(self, message: str):
        super().__init__(message, code="PERSISTENCE_FAILURE")
