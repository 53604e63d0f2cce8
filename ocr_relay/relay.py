import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

import httpx
from fastapi.responses import JSONResponse

from ocr_relay.config import RelayConfig
from ocr_relay.schemas import ErrorResponse, OcrSuccessResponse, UpstreamErrorResponse
from ocr_relay.upstream import HttpxUpstream, MultipartBody, Upstream, UpstreamResponse

logger = logging.getLogger("ocr_relay.relay")

SUCCESS_MESSAGE = "The slip was read successfully."
NO_FILE_MESSAGE = "No image file was found in the request. Please upload a receipt image."
TIMEOUT_MESSAGE = "The OCR service took too long. Please try again."
TIMEOUT_DETAILS = "The OCR service took too long to respond"
UPSTREAM_MESSAGE = "The OCR service could not read the slip. Please try again."
NETWORK_MESSAGE = "Could not reach the OCR service. Please check the connection."
NETWORK_DETAILS = "Unable to connect to OCR service"
INTERNAL_MESSAGE = "Something went wrong while relaying the image. Please try again."


@dataclass(frozen=True)
class UploadedFile:
    content: bytes
    filename: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class RelayRequest:
    upload: UploadedFile
    url: str
    timeout_s: float

    def multipart(self) -> MultipartBody:
        return MultipartBody(
            filename=self.upload.filename,
            content_type=self.upload.mime_type,
            content=self.upload.content,
        )


@dataclass(frozen=True)
class Success:
    payload: Any


@dataclass(frozen=True)
class UpstreamError:
    status: int
    body: Any


@dataclass(frozen=True)
class NetworkError:
    message: str = ""


@dataclass(frozen=True)
class Timeout:
    message: str = ""


@dataclass(frozen=True)
class LocalValidationError:
    reason: str


@dataclass(frozen=True)
class UnexpectedError:
    message: str


RelayResult = Union[Success, UpstreamError, NetworkError, Timeout, LocalValidationError, UnexpectedError]


def decode_body(response: UpstreamResponse) -> Any:
    text = response.content.decode("utf-8", errors="replace")
    if not text:
        return ""
    try:
        return json.loads(text)
    except ValueError:
        return text


def classify(outcome: UpstreamResponse | BaseException) -> RelayResult:
    if isinstance(outcome, UpstreamResponse):
        body = decode_body(outcome)
        if outcome.ok:
            return Success(payload=body)
        if not body and not isinstance(body, (dict, list)):
            body = f"Request failed with status code {outcome.status_code}"
        return UpstreamError(status=outcome.status_code, body=body)
    if isinstance(outcome, (httpx.TimeoutException, asyncio.TimeoutError)):
        return Timeout(message=str(outcome))
    if isinstance(outcome, httpx.TransportError):
        return NetworkError(message=str(outcome))
    return UnexpectedError(message=str(outcome) or type(outcome).__name__)


async def handle(
    upload: UploadedFile | None,
    config: RelayConfig,
    upstream: Upstream | None = None,
) -> RelayResult:
    if upload is None:
        return LocalValidationError(reason="no file uploaded")

    request = RelayRequest(upload=upload, url=config.upstream_url, timeout_s=config.timeout_s)
    logger.info(
        "relay_start",
        extra={"upload_filename": upload.filename, "size_bytes": upload.size, "upstream_url": request.url},
    )
    if upstream is None:
        upstream = HttpxUpstream(request.url, timeout_s=request.timeout_s)

    outcome: UpstreamResponse | BaseException
    try:
        outcome = await asyncio.wait_for(upstream.send(request.multipart()), timeout=request.timeout_s)
    except Exception as exc:  # noqa: BLE001
        outcome = exc

    result = classify(outcome)
    if isinstance(result, Success):
        logger.info("relay_success", extra={"upload_filename": upload.filename})
    else:
        logger.warning(
            "relay_failed",
            extra={"upload_filename": upload.filename, "outcome": type(result).__name__, "error": str(outcome)},
        )
    return result


def utc_timestamp(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render(result: RelayResult, now: datetime | None = None) -> JSONResponse:
    if isinstance(result, Success):
        body = OcrSuccessResponse(data=result.payload, message=SUCCESS_MESSAGE, timestamp=utc_timestamp(now))
        return JSONResponse(status_code=200, content=body.model_dump())

    if isinstance(result, LocalValidationError):
        body = ErrorResponse(error="No file uploaded", message=NO_FILE_MESSAGE)
        return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))

    if isinstance(result, Timeout):
        body = ErrorResponse(error="Request timeout", message=TIMEOUT_MESSAGE, details=TIMEOUT_DETAILS)
        return JSONResponse(status_code=408, content=body.model_dump(exclude_none=True))

    if isinstance(result, UpstreamError):
        body = UpstreamErrorResponse(
            error="OCR API Error",
            message=UPSTREAM_MESSAGE,
            details=result.body,
            status=result.status,
        )
        return JSONResponse(status_code=result.status, content=body.model_dump())

    if isinstance(result, NetworkError):
        body = ErrorResponse(error="Network Error", message=NETWORK_MESSAGE, details=NETWORK_DETAILS)
        return JSONResponse(status_code=503, content=body.model_dump(exclude_none=True))

    body = ErrorResponse(error="Internal Server Error", message=INTERNAL_MESSAGE, details=result.message)
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
