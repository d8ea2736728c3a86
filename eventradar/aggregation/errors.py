"""
Error taxonomy for the aggregation core.

Only two errors are fatal to a search: OriginUnresolvedError and
InvalidCriteriaError. Provider and host-store outages are caught at their
boundary and degrade into an empty contribution. Geocode misses and duplicate
records are not exceptions at all; they are logged and the record is dropped.
"""


class AggregationError(Exception):
    """Base class for all errors raised by the aggregation core."""


class OriginUnresolvedError(AggregationError):
    """The user's origin could not be turned into coordinates."""

    def __init__(self, origin_text: str | None = None):
        self.origin_text = origin_text
        if origin_text:
            message = f"Cannot search without a location: could not resolve '{origin_text}'"
        else:
            message = "Cannot search without a location: no origin provided"
        super().__init__(message)


class InvalidCriteriaError(AggregationError):
    """Search criteria are malformed (e.g. inverted time window)."""


class ProviderUnavailableError(AggregationError):
    """An external provider failed, timed out or returned an unusable payload."""

    def __init__(self, provider_id: str, reason: str):
        self.provider_id = provider_id
        self.reason = reason
        super().__init__(f"Provider '{provider_id}' unavailable: {reason}")


class HostStoreUnavailableError(AggregationError):
    """The host event repository could not be read."""


class SessionStoreError(AggregationError):
    """A session store write or delete kept failing after retries."""
