"""Exception types raised by the nightcap engine."""


class NightcapError(Exception):
    """Base class for all nightcap errors."""


class InvalidParameter(NightcapError, ValueError):
    """A caller passed a malformed argument (bad half-life, step, lengths...).

    These indicate a bug or a broken habit configuration upstream and are
    never retried.
    """


class InsufficientData(NightcapError, ValueError):
    """A statistic was requested over an empty sample."""
