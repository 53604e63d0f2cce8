import asyncio
import os

import pytest

# Keep tests offline-safe: anything that escapes the fakes hits an unresolvable host.
os.environ["OCR_UPSTREAM_URL"] = "http://ocr-upstream.invalid/parse-slip-image"
os.environ["LOG_JSON"] = "false"

from ocr_relay.upstream import MultipartBody, UpstreamResponse  # noqa: E402


class FakeUpstream:
    def __init__(
        self,
        response: UpstreamResponse | None = None,
        error: Exception | None = None,
        delay_s: float = 0.0,
    ) -> None:
        self.response = response or UpstreamResponse(status_code=200, content=b"{}")
        self.error = error
        self.delay_s = delay_s
        self.calls: list[MultipartBody] = []
        self.completed = 0

    async def send(self, body: MultipartBody) -> UpstreamResponse:
        self.calls.append(body)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        self.completed += 1
        return self.response


@pytest.fixture
def make_upstream():
    return FakeUpstream


def json_response(status_code: int, body: bytes) -> UpstreamResponse:
    return UpstreamResponse(status_code=status_code, content=body, content_type="application/json")


@pytest.fixture
def upstream_json():
    return json_response
