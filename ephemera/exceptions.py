"""Exception hierarchy for ephemera.

Missing keys are never reported through exceptions; backends return
``None`` for absent values and callers substitute defaults.
"""


class EphemeraError(Exception):
    """Base class for all ephemera errors."""


class BackendError(EphemeraError):
    """The underlying store failed (network, I/O). Not retried here."""


class ConfigurationError(EphemeraError):
    """Invalid TTL, bucket option combination or backend configuration."""


class DuplicateBackendError(ConfigurationError):
    """A Multi backend was given two configuration-equal backends."""


class NameResolutionError(EphemeraError):
    """A stored type tag could not be resolved back to a registered type."""
