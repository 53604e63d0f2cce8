import httpx
import pytest

from ocr_relay.config import RelayConfig
from ocr_relay.relay import NetworkError, Success, UpstreamError, UploadedFile, classify, handle
from ocr_relay.upstream import HttpxUpstream, MultipartBody, UpstreamResponse

URL = "http://ocr.test/parse-slip-image"


@pytest.mark.asyncio
async def test_httpx_upstream_posts_multipart_file() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"amount": 100})

    upstream = HttpxUpstream(URL, timeout_s=5.0, transport=httpx.MockTransport(_handler))
    body = MultipartBody(filename="slip.jpg", content_type="image/jpeg", content=b"jpeg-bytes")

    response = await upstream.send(body)

    assert response.status_code == 200
    assert response.content_type.startswith("application/json")
    assert classify(response) == Success(payload={"amount": 100})

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["accept"] == "application/json"
    assert request.headers["content-type"].startswith("multipart/form-data; boundary=")
    assert b'name="file"; filename="slip.jpg"' in request.content
    assert b"Content-Type: image/jpeg" in request.content
    assert b"jpeg-bytes" in request.content


@pytest.mark.asyncio
async def test_httpx_upstream_returns_error_statuses_without_raising() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            422,
            content=b'{"detail": "bad image"}',
            headers={"content-type": "application/json"},
        )

    upstream = HttpxUpstream(URL, transport=httpx.MockTransport(_handler))

    response = await upstream.send(MultipartBody(filename="a.png", content_type="image/png", content=b"x"))

    assert response == UpstreamResponse(
        status_code=422,
        content=b'{"detail": "bad image"}',
        content_type="application/json",
    )
    assert classify(response) == UpstreamError(status=422, body={"detail": "bad image"})


@pytest.mark.asyncio
async def test_dns_failure_through_httpx_maps_to_network_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

    upstream = HttpxUpstream(URL, transport=httpx.MockTransport(_handler))
    upload = UploadedFile(content=b"png", filename="slip.png", mime_type="image/png")

    result = await handle(upload, RelayConfig(upstream_url=URL), upstream)

    assert isinstance(result, NetworkError)
    assert "Name or service not known" in result.message
