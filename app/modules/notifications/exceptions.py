class NotificationError(Exception):
    """Base class for notification dispatch failures."""


class TokenLookupError(NotificationError):
    """Raised when device tokens cannot be read from the data store."""


class ProviderTokenError(NotificationError):
    """Raised when the APNs provider token cannot be minted (bad key material or config)."""
