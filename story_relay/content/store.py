"""Contract for the remote host that keeps story text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class VersionToken:
    """Opaque revision marker handed out by every read and write."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ContentSnapshot:
    content: str
    version: VersionToken


class ContentStore(Protocol):
    """Versioned text blobs addressed by (container, path).

    Failures are reported with the errors in ``story_relay.domain.errors``:
    ``NotFoundError`` for a missing file, ``ConflictError`` for a stale version
    on update and ``UpstreamError`` for everything else.
    """

    async def create(self, container: str, path: str, content: str, message: str) -> VersionToken:
        ...

    async def read(self, container: str, path: str) -> ContentSnapshot:
        ...

    async def update(
        self,
        container: str,
        path: str,
        content: str,
        message: str,
        expected_version: VersionToken,
    ) -> VersionToken:
        ...

    async def container_exists(self, container: str) -> bool:
        ...
