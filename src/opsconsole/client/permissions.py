"""Console API client for the caller's permission set.

Fetches ``/api/v1/rbac/me/permissions`` once and keeps the resulting
``PermissionView`` for a staleness window, so UI code can call
``view.can(...)`` synchronously without a request per check.
"""

import time
from collections.abc import Callable
from types import TracebackType

import httpx
import structlog

from opsconsole.core.constants import DEFAULT_PERMISSIONS_CACHE_SECONDS
from opsconsole.core.permissions.visibility import PermissionView


logger = structlog.get_logger()

ME_PERMISSIONS_PATH = "/api/v1/rbac/me/permissions"


class PermissionsClient:
    """Cached fetcher of the caller's effective permissions.

    A failed fetch yields an empty view, which hides every guarded
    control until the next successful refresh.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        stale_after: float = DEFAULT_PERMISSIONS_CACHE_SECONDS,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Console API base URL
            access_token: Bearer token of the signed-in user
            stale_after: Seconds before a cached view is refetched
            http_client: Optional preconfigured client (tests, shared pools)
            clock: Monotonic time source
        """
        self.access_token = access_token
        self.stale_after = stale_after
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self._clock = clock
        self._view: PermissionView | None = None
        self._fetched_at: float | None = None

    async def __aenter__(self) -> "PermissionsClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    @property
    def is_stale(self) -> bool:
        if self._view is None or self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at >= self.stale_after

    def set_token(self, access_token: str | None) -> None:
        """Switch the signed-in user and drop the cached view."""
        self.access_token = access_token
        self.invalidate()

    def invalidate(self) -> None:
        self._view = None
        self._fetched_at = None

    async def get_view(self, force: bool = False) -> PermissionView:
        """Return the cached view, refetching it when stale or forced."""
        if not force and not self.is_stale and self._view is not None:
            return self._view

        view = await self._fetch()
        self._view = view
        self._fetched_at = self._clock()
        return view

    async def _fetch(self) -> PermissionView:
        if not self.access_token:
            return PermissionView.anonymous()

        try:
            response = await self._http.get(
                ME_PERMISSIONS_PATH,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("permissions_fetch_failed", error=str(e))
            return PermissionView()

        # Non-JSON bodies (proxy login pages) and malformed items
        try:
            return PermissionView.from_payload(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                "permissions_fetch_failed",
                error=str(e),
                status_code=response.status_code,
            )
            return PermissionView()
