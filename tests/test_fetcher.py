import httpx
import pytest

from grantflow.core.exceptions import FetchException
from grantflow.services.fetcher import Fetcher

URL = "https://api.example.org/search"


def make_fetcher(handler) -> Fetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Fetcher(client=client, user_agent="GrantFlowTest/1.0")


async def test_fetch_returns_body_and_sends_user_agent():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["user_agent"] = request.headers["User-Agent"]
        seen["keyword"] = request.url.params.get("keyword")
        return httpx.Response(200, text="<html>ok</html>")

    fetcher = make_fetcher(handler)
    body = await fetcher.fetch(URL, params={"keyword": "literacy"}, delay=0)

    assert body == "<html>ok</html>"
    assert seen == {"user_agent": "GrantFlowTest/1.0", "keyword": "literacy"}


async def test_user_agent_cannot_be_overridden():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["user_agent"] = request.headers["User-Agent"]
        return httpx.Response(200, text="ok")

    await make_fetcher(handler).fetch(URL, headers={"User-Agent": "Mozilla/5.0"}, delay=0)
    assert seen["user_agent"] == "GrantFlowTest/1.0"


async def test_retries_until_success():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, text="recovered")

    body = await make_fetcher(handler).fetch(URL, retries=3, delay=0)

    assert body == "recovered"
    assert len(calls) == 3


async def test_exhausted_retries_raise_fetch_exception_with_cause():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(FetchException) as exc_info:
        await make_fetcher(handler).fetch(URL, retries=3, delay=0)

    assert len(calls) == 3
    assert exc_info.value.url == URL
    assert exc_info.value.attempts == 3
    assert exc_info.value.error_code == "FETCH_ERROR"
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


async def test_zero_retries_still_makes_one_attempt():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    fetcher = make_fetcher(handler)
    fetcher.default_retries = 5

    with pytest.raises(FetchException) as exc_info:
        await fetcher.fetch(URL, retries=0, delay=0)

    assert len(calls) == 1
    assert exc_info.value.attempts == 1


async def test_transport_errors_are_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchException) as exc_info:
        await make_fetcher(handler).fetch(URL, retries=2, delay=0)

    assert len(calls) == 2
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


async def test_fetch_json_decodes_body():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Accept"] == "application/json"
        return httpx.Response(200, json={"oppHits": [{"id": "1"}]})

    payload = await make_fetcher(handler).fetch_json(URL, delay=0)
    assert payload == {"oppHits": [{"id": "1"}]}


async def test_fetch_json_rejects_invalid_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(FetchException, match="not valid JSON"):
        await make_fetcher(handler).fetch_json(URL, delay=0)


async def test_aclose_leaves_injected_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    fetcher = Fetcher(client=client)
    await fetcher.aclose()
    assert not client.is_closed
    await client.aclose()
