"""Client for Java build documents published by the metadata server.

The server publishes one JSON document per major version and platform at
``{server}/java/{major}/{os}-{arch}.json``.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from launcher_runtimes.java.errors import MetadataError, StoreUnavailable
from launcher_runtimes.java.models import AvailableBuild, Environment
from launcher_runtimes.java.net import send_with_retry

logger = logging.getLogger(__name__)


def build_document_url(server_url: str, major: int, environment: Environment) -> str:
    return f"{server_url.rstrip('/')}/java/{major}/{environment.slug}.json"


class MetadataClient:
    """Fetches ``AvailableBuild`` documents over HTTP."""

    def __init__(
        self,
        server_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.server_url = server_url
        self.timeout = timeout
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        """Create an HTTP client sharing this client's timeout and transport."""
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def fetch_build(self, major: int, environment: Environment) -> AvailableBuild | None:
        """Return the latest build of ``major`` for ``environment``.

        Returns:
            The build, or None when the server has no build for this platform.

        Server and network errors are retried before giving up.

        Raises:
            StoreUnavailable: If the server cannot be reached.
            MetadataError: If the server answers with an error or a bad document.
        """
        url = build_document_url(self.server_url, major, environment)
        try:
            async with self.client() as client:
                response = await send_with_retry(client, "GET", url)
        except httpx.TransportError as exc:
            raise StoreUnavailable(f"Cannot reach metadata server at {self.server_url}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise MetadataError(f"Request for {url} failed: {exc}") from exc

        if response.status_code == 404:
            logger.info("No Java %s build published for %s", major, environment.slug)
            return None
        if not response.is_success:
            raise MetadataError(f"Metadata server returned HTTP {response.status_code} for {url}")

        try:
            build = AvailableBuild.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise MetadataError(f"Invalid Java build document at {url}: {exc}") from exc

        if build.major != major:
            raise MetadataError(f"Document at {url} describes Java {build.major}, expected {major}")
        return build
