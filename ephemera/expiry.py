"""Expiry sentinel and the create-vs-preserve TTL rule."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Storage written with this expiry lives for as long as the store keeps it.
NEVER_EXPIRE = None


def coerce_ttl(value: Any) -> Optional[int]:
    """Return ``value`` as whole seconds, or ``NEVER_EXPIRE``.

    Accepts ints, floats, numeric strings and ``timedelta``. Raises
    `ConfigurationError` for anything else.
    """
    if value is NEVER_EXPIRE:
        return NEVER_EXPIRE
    if isinstance(value, bool):
        raise ConfigurationError(f"Expiry must be a number of seconds, got {value!r}")
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            pass
    raise ConfigurationError(f"Expiry must be a number of seconds, got {value!r}")


def expiry_for_write(backend, key: str, is_new: bool, configured: Any, counter: bool = False) -> Optional[int]:
    """Decide the TTL to pass along with a write to ``key``.

    A value written for the first time gets the configured duration. An
    update keeps whatever lifetime the value has left, so updating a record
    never extends its life. A value that expired between the read and this
    write is treated as new.
    """
    configured = coerce_ttl(configured)
    if configured is NEVER_EXPIRE:
        return NEVER_EXPIRE
    if is_new:
        return configured

    remaining = backend.ttl(key)
    if remaining is not None:
        logger.debug("Preserving remaining ttl %ss for %s", remaining, key)
        return max(remaining, 1)

    still_there = backend.existsc(key) if counter else backend.exists(key)
    if still_there:
        return NEVER_EXPIRE
    logger.debug("%s vanished before write, applying full expiry %ss", key, configured)
    return configured
