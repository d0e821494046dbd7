from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class BackendProtocol(Protocol):
    """Backend protocol mirroring `ephemera.backend.base.Backend`.

    Implementations should follow the semantics documented on the abstract
    base class (``None`` for absent keys, TTL-expired keys reported absent,
    `BackendError` for driver failures).
    """

    config_key: str

    def get(self, key: str, expiry: Optional[int] = None) -> Optional[str]: ...

    def set(self, key: str, value: str, expiry: Optional[int] = None) -> Any: ...

    def delete(self, key: str) -> None: ...

    def exists(self, key: str) -> bool: ...

    def getc(self, key: str, expiry: Optional[int] = None) -> Optional[int]: ...

    def setc(self, key: str, value: int, expiry: Optional[int] = None) -> Any: ...

    def deletec(self, key: str) -> None: ...

    def existsc(self, key: str) -> bool: ...

    def incr(self, key: str, expiry: Optional[int] = None) -> int: ...

    def decr(self, key: str, expiry: Optional[int] = None) -> int: ...

    def incrby(self, key: str, amount: int, expiry: Optional[int] = None) -> int: ...

    def decrby(self, key: str, amount: int, expiry: Optional[int] = None) -> int: ...

    def expire(self, key: str, ttl: Any) -> Any: ...

    def ttl(self, key: str) -> Optional[int]: ...

    def flush(self) -> None: ...
