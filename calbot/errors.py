"""Exception types shared across calbot.

Collaborators translate library exceptions into these so the scheduler only
has to know about three failure kinds.
"""


class CalbotError(Exception):
    """Base class for all calbot errors."""


class FetchError(CalbotError):
    """The calendar feed could not be downloaded or parsed."""


class DeliveryError(CalbotError):
    """A notification could not be delivered to the destination."""


class ConfigurationError(CalbotError):
    """Startup configuration is missing or invalid. Always fatal."""


__all__ = ["CalbotError", "ConfigurationError", "DeliveryError", "FetchError"]
