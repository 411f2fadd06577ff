"""Tests for the REST resource client."""

import json

import httpx
import pytest

from erpsync.api_errors import DecodeError, ErrorCode, NetworkError, RequestFailedError
from erpsync.resources.client import ResourceClient
from erpsync.settings import get_settings

BASE_URL = "http://erp.test/api"


def make_client(handler, **kwargs) -> ResourceClient:
    return ResourceClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


class TestResourceClient:
    """Tests for the list/create/update/delete contract."""

    def setup_method(self):
        self.requests = []

    def recorder(self, status_code=200, body=None, content=None):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if content is not None:
                return httpx.Response(status_code, content=content)
            return httpx.Response(status_code, json=body)
        return handler

    @pytest.mark.asyncio
    async def test_list_sends_get_with_params(self):
        async with make_client(self.recorder(body=[{"id": 1}])) as client:
            result = await client.list("/crm/contacts", {"page": 2, "search": None})

        assert result == [{"id": 1}]
        request = self.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/crm/contacts"
        assert dict(request.url.params) == {"page": "2"}
        assert request.headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_create_posts_json(self):
        async with make_client(self.recorder(status_code=201, body={"id": 5, "name": "Ada"})) as client:
            result = await client.create("/crm/contacts", {"name": "Ada"})

        assert result == {"id": 5, "name": "Ada"}
        request = self.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"name": "Ada"}
        assert request.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_update_puts_to_item_path(self):
        async with make_client(self.recorder(body={"id": 7, "stage": "won"})) as client:
            result = await client.update("/crm/deals", 7, {"stage": "won"})

        assert result == {"id": 7, "stage": "won"}
        assert self.requests[0].method == "PUT"
        assert self.requests[0].url.path == "/api/crm/deals/7"

    @pytest.mark.asyncio
    async def test_update_empty_body_is_empty_dict(self):
        async with make_client(self.recorder(status_code=204, content=b"")) as client:
            assert await client.update("/crm/deals", 7, {"stage": "won"}) == {}

    @pytest.mark.asyncio
    async def test_delete(self):
        async with make_client(self.recorder(status_code=204, content=b"")) as client:
            assert await client.delete("/crm/contacts", 3) is True

        assert self.requests[0].method == "DELETE"
        assert self.requests[0].url.path == "/api/crm/contacts/3"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        async with make_client(self.recorder(status_code=404, body={"message": "missing"})) as client:
            with pytest.raises(RequestFailedError) as exc_info:
                await client.list("/crm/contacts")

        err = exc_info.value
        assert err.status_code == 404
        assert str(err) == "HTTP error! status: 404"
        assert err.error_code == ErrorCode.RESOURCE_NOT_FOUND
        assert err.method == "GET"

    @pytest.mark.asyncio
    async def test_network_failure_raises_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.list("/crm/contacts")

        assert "connection refused" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_non_json_success_raises_decode_error(self):
        async with make_client(self.recorder(content=b"<html>oops</html>")) as client:
            with pytest.raises(DecodeError):
                await client.list("/crm/contacts")

    @pytest.mark.asyncio
    async def test_explicit_cookies_sent(self):
        async with make_client(self.recorder(body=[]), cookies={"connect.sid": "abc"}) as client:
            await client.list("/crm/contacts")

        assert "connect.sid=abc" in self.requests[0].headers["cookie"]

    @pytest.mark.asyncio
    async def test_session_cookie_from_settings(self, monkeypatch):
        monkeypatch.setenv("ERPSYNC_SESSION_COOKIE", "s%3Axyz")
        get_settings.cache_clear()

        async with make_client(self.recorder(body=[])) as client:
            await client.list("/crm/contacts")

        assert "connect.sid=s%3Axyz" in self.requests[0].headers["cookie"]

    @pytest.mark.asyncio
    async def test_request_count_and_base_url(self):
        async with make_client(self.recorder(body=[])) as client:
            await client.list("/a")
            await client.list("/b")
            assert client.request_count == 2
            assert client.base_url == BASE_URL

    def test_item_path(self):
        assert ResourceClient.item_path("/crm/contacts/", 9) == "/crm/contacts/9"
