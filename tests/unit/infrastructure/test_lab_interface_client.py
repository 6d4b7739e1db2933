"""Unit tests for the lab interface HTTP client."""

import base64

import httpx
import pytest

from confirmation_service.config import Settings
from confirmation_service.errors import FatalStartupError, LabInterfaceUnavailable
from confirmation_service.infrastructure.lab_interface.client import LabInterfaceClient

BASE_URL = "https://lab.example.test/interface"


def _client(handler) -> LabInterfaceClient:
    return LabInterfaceClient(
        BASE_URL, "tracker", "secret", transport=httpx.MockTransport(handler)
    )


class TestListPending:
    @pytest.mark.asyncio
    async def test_parses_queue_page(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert str(request.url) == f"{BASE_URL}/order/received"
            return httpx.Response(
                200,
                json={
                    "status": "ok",
                    "total_count": 42,
                    "result_count": 2,
                    "results": ["guid-1", "guid-2"],
                },
            )

        async with _client(handler) as client:
            page = await client.list_pending()

        assert page.ids == ["guid-1", "guid-2"]
        assert page.returned_count == 2
        assert page.total_count == 42
        assert not page.drained

    @pytest.mark.asyncio
    async def test_sends_basic_auth(self) -> None:
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers["Authorization"]
            return httpx.Response(200, json={"total_count": 0, "result_count": 0, "results": []})

        async with _client(handler) as client:
            await client.list_pending()

        expected = base64.b64encode(b"tracker:secret").decode()
        assert seen["authorization"] == f"Basic {expected}"

    @pytest.mark.asyncio
    async def test_missing_counts_default_to_result_length(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"results": ["a", "b", "c"]})

        async with _client(handler) as client:
            page = await client.list_pending()

        assert page.returned_count == 3
        assert page.total_count == 3
        assert page.drained

    @pytest.mark.asyncio
    async def test_non_2xx_raises_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401)

        async with _client(handler) as client:
            with pytest.raises(LabInterfaceUnavailable) as exc_info:
                await client.list_pending()

        assert exc_info.value.status_code == 401
        assert "401" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_json_raises_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with _client(handler) as client:
            with pytest.raises(LabInterfaceUnavailable):
                await client.list_pending()

    @pytest.mark.asyncio
    async def test_transport_error_raises_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(LabInterfaceUnavailable, match="connection refused"):
                await client.list_pending()


class TestDetailAndAcknowledge:
    @pytest.mark.asyncio
    async def test_fetch_detail_returns_raw_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/interface/order/received/guid-1"
            return httpx.Response(200, text="Received Time:1\nAccession:2\nMSH|x")

        async with _client(handler) as client:
            raw = await client.fetch_detail("guid-1")

        assert raw == "Received Time:1\nAccession:2\nMSH|x"

    @pytest.mark.asyncio
    async def test_fetch_detail_failure_carries_correlation_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with _client(handler) as client:
            with pytest.raises(LabInterfaceUnavailable) as exc_info:
                await client.fetch_detail("guid-1")

        assert exc_info.value.correlation_id == "guid-1"

    @pytest.mark.asyncio
    async def test_acknowledge_posts_to_ack_endpoint(self) -> None:
        calls: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, request.url.path))
            return httpx.Response(200, json={"status": "ok", "id": "guid-1", "message": "acknowledged"})

        async with _client(handler) as client:
            await client.acknowledge("guid-1")

        assert calls == [("POST", "/interface/order/received/guid-1/ack")]

    @pytest.mark.asyncio
    async def test_acknowledge_failure_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        async with _client(handler) as client:
            with pytest.raises(LabInterfaceUnavailable):
                await client.acknowledge("guid-1")

    @pytest.mark.asyncio
    async def test_correlation_id_is_path_escaped(self) -> None:
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.raw_path.decode())
            return httpx.Response(200, text="")

        async with _client(handler) as client:
            await client.fetch_detail("a/b c")

        assert paths == ["/interface/order/received/a%2Fb%20c"]


class TestFromSettings:
    def test_missing_credentials_raise_fatal_startup_error(self) -> None:
        settings = Settings(lab_interface_base_url=BASE_URL, lab_interface_username="", lab_interface_password="")

        with pytest.raises(FatalStartupError, match="LAB_INTERFACE_USERNAME"):
            LabInterfaceClient.from_settings(settings)

    @pytest.mark.asyncio
    async def test_builds_from_settings(self, test_settings: Settings) -> None:
        client = LabInterfaceClient.from_settings(test_settings)
        try:
            assert client.base_url == "https://lab.example.test/interface"
            assert client.timeout == test_settings.lab_interface_timeout
        finally:
            await client.close()
