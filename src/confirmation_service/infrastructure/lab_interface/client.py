"""HTTP client for the lab interface "received orders" queue.

The upstream exposes confirmations of submitted lab orders as a queue: a list
call returns a bounded page of correlation ids, a detail call returns the raw
confirmation text, and an acknowledge call removes the item from the queue.
"""

from dataclasses import dataclass, field
from urllib.parse import quote

import httpx
import structlog

from confirmation_service.config import Settings
from confirmation_service.errors import LabInterfaceUnavailable

logger = structlog.get_logger()


@dataclass(frozen=True)
class PendingConfirmations:
    """One page of the upstream pending-confirmation queue."""

    total_count: int
    returned_count: int
    ids: list[str] = field(default_factory=list)

    @property
    def drained(self) -> bool:
        """True when the upstream reports nothing outstanding beyond this page."""
        return self.returned_count >= self.total_count


class LabInterfaceClient:
    """
    Async client for the lab interface API.

    All requests use HTTP Basic authentication. Any non-2xx response or
    transport failure is raised as ``LabInterfaceUnavailable``.

    Example:
        >>> async with LabInterfaceClient.from_settings(settings) as client:
        ...     page = await client.list_pending()
        ...     raw = await client.fetch_detail(page.ids[0])
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            auth=httpx.BasicAuth(username, password),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "LabInterfaceClient":
        """Build a client from settings; raises FatalStartupError if credentials are missing."""
        base_url, username, password = settings.lab_interface_credentials()
        return cls(
            base_url,
            username,
            password,
            timeout=settings.lab_interface_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "LabInterfaceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def list_pending(self) -> PendingConfirmations:
        """List correlation ids of confirmations waiting in the upstream queue."""
        response = await self._request("GET", "/order/received")
        try:
            data = response.json()
        except ValueError as e:
            raise LabInterfaceUnavailable(
                f"Invalid pending confirmations response: {e}",
                status_code=response.status_code,
            ) from e

        ids = [str(item) for item in (data.get("results") or [])]
        returned_count = int(data.get("result_count", len(ids)))
        total_count = int(data.get("total_count", returned_count))

        logger.info(
            "Listed pending confirmations",
            returned_count=returned_count,
            total_count=total_count,
        )
        return PendingConfirmations(
            total_count=total_count,
            returned_count=returned_count,
            ids=ids,
        )

    async def fetch_detail(self, correlation_id: str) -> str:
        """Fetch the raw confirmation payload for one queued item."""
        response = await self._request(
            "GET", f"/order/received/{quote(correlation_id, safe='')}", correlation_id
        )
        return response.text

    async def acknowledge(self, correlation_id: str) -> None:
        """Mark a queued item as consumed so it leaves the pending queue."""
        await self._request(
            "POST",
            f"/order/received/{quote(correlation_id, safe='')}/ack",
            correlation_id,
        )
        logger.debug("Acknowledged confirmation", correlation_id=correlation_id)

    async def _request(
        self, method: str, path: str, correlation_id: str | None = None
    ) -> httpx.Response:
        try:
            response = await self.client.request(method, f"{self.base_url}{path}")
        except httpx.HTTPError as e:
            raise LabInterfaceUnavailable(
                f"{method} {path} failed: {e}", correlation_id=correlation_id
            ) from e

        if not response.is_success:
            raise LabInterfaceUnavailable(
                f"{method} {path} returned {response.status_code} {response.reason_phrase}",
                correlation_id=correlation_id,
                status_code=response.status_code,
            )
        return response
