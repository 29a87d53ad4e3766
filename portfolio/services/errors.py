class UpstreamError(Exception):
    """Raised when an external source is unreachable or answers with garbage."""


class FeedError(UpstreamError):
    """Raised when a syndication feed cannot be retrieved or parsed."""


class StoreError(Exception):
    """Base content store error."""


class StoreUnavailableError(StoreError):
    """Raised when a stored document cannot be read or written."""


class StoreNotFoundError(StoreError):
    """Raised when a section has no stored document yet."""


class StoreValidationError(StoreError):
    """Raised when payload validation fails before persistence."""


class UploadRejectedError(Exception):
    """Raised when an uploaded file fails type or size checks."""


class AuthError(Exception):
    """Raised when a bearer token is missing or does not match."""
