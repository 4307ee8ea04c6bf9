from __future__ import annotations


class ConfigurationInvalid(ValueError):
    """A configuration mutation was rejected; the previous state is kept."""


class ShieldError(RuntimeError):
    """The platform refused to apply or clear a block."""


# What decoding a stored JSON entry can raise when the entry is malformed.
# datetime.fromtimestamp raises OSError for out-of-range values on some platforms.
DECODE_ERRORS = (ValueError, TypeError, KeyError, AttributeError, OverflowError, OSError)
