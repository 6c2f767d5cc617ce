"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class FrameTransport(Protocol):
    """Carries whole payloads to and from the daemon.

    Implementations emit ``open``, ``packet(payload)``, ``close(had_error)``
    and ``error(exc)`` through ``on``.
    """

    @property
    def connected(self) -> bool: ...

    def on(self, event: str, listener: Callable[..., Any]) -> Callable[[], bool]: ...

    async def connect(self) -> None:
        """Open the connection; a no-op while connected or already connecting."""

    async def reconnect(self) -> None:
        """Open a fresh connection after a close."""

    def send_packet(self, payload: bytes) -> None:
        """Frame ``payload`` and write it to the daemon."""

    def close(self) -> None:
        """Tear down the connection."""
