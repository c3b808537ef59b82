"""Client for the crates.io registry API."""

import logging
from typing import Optional

import httpx

from . import __version__
from .config import DEFAULT_HTTP_TIMEOUT, DEFAULT_REGISTRY_URL
from .errors import RegistryError
from .models import CrateResponse
from .versions import highest_stable

logger = logging.getLogger(__name__)

# crates.io rejects requests without a descriptive User-Agent
USER_AGENT = f"cargo-dokita/{__version__} (https://github.com/Sally-Builds/cargo-dokita)"


class CratesIoClient:
    """Async HTTP client for looking up crate versions.

    Must be used as an async context manager. Every failure (transport error,
    non-success status, malformed body) surfaces as ``RegistryError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the crates endpoint. Defaults to the public crates.io API.
            timeout: Per-request timeout in seconds.
            transport: Optional transport override (tests use ``httpx.MockTransport``).
        """
        self.base_url = base_url or DEFAULT_REGISTRY_URL
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "CratesIoClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_crate(self, crate_name: str) -> CrateResponse:
        """Fetch the registry record of a crate.

        Raises:
            RegistryError: If the request fails or the body cannot be parsed.
        """
        if not self._client:
            raise RuntimeError("CratesIoClient must be used as an async context manager")

        logger.debug(f"Fetching crates.io record for {crate_name}")

        try:
            response = await self._client.get(f"/{crate_name}")
        except httpx.HTTPError as e:
            raise RegistryError(
                f"Failed to fetch latest version for dependency '{crate_name}': {e!r}"
            ) from e

        if not response.is_success:
            raise RegistryError(
                f"Failed to fetch latest version for dependency '{crate_name}': "
                f"crates.io API request failed with status {response.status_code}"
            )

        try:
            return CrateResponse.model_validate(response.json())
        except ValueError as e:
            raise RegistryError(
                f"Failed to fetch latest version for dependency '{crate_name}': "
                f"could not parse crates.io response: {e}"
            ) from e

    async def get_latest_version(self, crate_name: str) -> str:
        """Latest stable version of a crate.

        Prefers ``max_stable_version``, then ``max_version``, then the highest
        non-yanked stable entry of the version list.

        Raises:
            RegistryError: If the lookup fails or no version is published.
        """
        record = await self.get_crate(crate_name)

        latest = record.crate.max_stable_version or record.crate.max_version
        if latest:
            return latest

        best = highest_stable(v.num for v in record.versions if not v.yanked)
        if best is None:
            raise RegistryError(
                f"Failed to fetch latest version for dependency '{crate_name}': "
                "no published stable version"
            )
        return str(best)
