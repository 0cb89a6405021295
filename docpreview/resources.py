"""
Resource handles for decoded bytes.

A handle is an opaque URL owning a copy of a document's bytes, the way a
browser object URL owns a blob. Every handle created for a document must be
revoked exactly once; revoking an unknown or already revoked handle raises
``KeyError`` so double releases surface in tests instead of passing silently.
"""

import logging
import typing
import uuid

logger = logging.getLogger(__name__)

URL_PREFIX = "blob:docpreview/"


class ResourceRegistry(typing.Protocol):
    def create(self, data: bytes, content_type: str) -> str: ...

    def read(self, url: str) -> bytes: ...

    def revoke(self, url: str) -> None: ...


class InMemoryResourceRegistry:
    """Keeps handle payloads in a dict for the lifetime of the process."""

    def __init__(self):
        self._resources: dict[str, tuple[bytes, str]] = {}

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, url: object) -> bool:
        return url in self._resources

    def create(self, data: bytes, content_type: str) -> str:
        url = f"{URL_PREFIX}{uuid.uuid4()}"
        self._resources[url] = (bytes(data), content_type)
        logger.debug(f"Created resource {url} ({content_type}, {len(data)} bytes)")
        return url

    def read(self, url: str) -> bytes:
        return self._resources[url][0]

    def content_type(self, url: str) -> str:
        return self._resources[url][1]

    def revoke(self, url: str) -> None:
        del self._resources[url]
        logger.debug(f"Revoked resource {url}")
