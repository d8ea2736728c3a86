"""Event aggregation core: providers, host events, ranking and session results."""

__version__ = "0.1.0"
