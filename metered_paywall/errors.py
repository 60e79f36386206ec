"""Error taxonomy of the paywall core.

None of these errors ever reach an end user: each one has a non-blocking
fallback at the boundary where it is raised.
"""


class PaywallError(Exception):
    """Base class for paywall errors."""


class ConfigLoadError(PaywallError):
    """The paywall configuration could not be loaded or parsed.

    Recovered by keeping the last successfully loaded snapshot (or the defaults).
    """


class QuotaStoreUnavailable(PaywallError):
    """The quota backing store could not be reached or timed out.

    Recovered by failing open: the view is treated as within quota.
    """


class TelemetryDeliveryError(PaywallError):
    """An analytics event could not be delivered. Logged and swallowed."""


class InvalidConfigError(ConfigLoadError, ValueError):
    """A config document has unknown fields or out-of-range values."""
