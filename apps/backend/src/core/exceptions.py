class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass


class DraftNotFoundError(DomainError):
    """Exception raised when a draft session id is unknown or was discarded."""

    pass


class ListingNotFoundError(DomainError):
    """Exception raised when a listing id is unknown to the listing store."""

    pass
