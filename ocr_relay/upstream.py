from dataclasses import dataclass
from typing import Protocol

import httpx


@dataclass(frozen=True)
class MultipartBody:
    filename: str
    content_type: str
    content: bytes
    field_name: str = "file"

    def as_files(self) -> dict[str, tuple[str, bytes, str]]:
        return {self.field_name: (self.filename, self.content, self.content_type)}


@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    content: bytes = b""
    content_type: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Upstream(Protocol):
    async def send(self, body: MultipartBody) -> UpstreamResponse: ...


class HttpxUpstream:
    def __init__(
        self,
        url: str,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout_s = timeout_s
        self._transport = transport

    async def send(self, body: MultipartBody) -> UpstreamResponse:
        async with httpx.AsyncClient(
            timeout=self.timeout_s,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = await client.post(
                self.url,
                files=body.as_files(),
                headers={"Accept": "application/json"},
            )
            return UpstreamResponse(
                status_code=response.status_code,
                content=response.content,
                content_type=response.headers.get("content-type", ""),
            )
