import contextlib
import logging
import time
from http import HTTPStatus

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ocr_relay.config import RelayConfig, Settings, get_allowed_origins, settings
from ocr_relay.intake import IntakeError, read_upload
from ocr_relay.observability import RequestLoggingMiddleware, configure_logging
from ocr_relay.relay import LocalValidationError, handle, render, utc_timestamp
from ocr_relay.schemas import ErrorResponse, HealthResponse, NotFoundResponse, ServiceInfoResponse
from ocr_relay.security import setup_security
from ocr_relay.upstream import Upstream

logger = logging.getLogger("ocr_relay")

ENDPOINTS = {"health": "GET /", "ocr": "POST /api/ocr"}


def create_app(source: Settings | None = None, upstream: Upstream | None = None) -> FastAPI:
    config = source or settings
    configure_logging(config)

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info(
            "relay_startup",
            extra={"host": config.host, "port": config.port, "upstream_url": config.upstream_url},
        )
        yield
        logger.info("relay_shutdown")

    app = FastAPI(title="OCR Relay", version="0.1.0", lifespan=lifespan)
    app.state.relay_config = RelayConfig.from_settings(config)
    app.state.upstream = upstream
    app.state.started_at = time.monotonic()

    app.add_middleware(RequestLoggingMiddleware)
    setup_security(app, get_allowed_origins(config))

    @app.exception_handler(IntakeError)
    async def intake_error_handler(_: Request, exc: IntakeError) -> JSONResponse:
        logger.warning("upload_rejected", extra={"error": exc.error})
        body = ErrorResponse(error=exc.error, message=exc.message)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # a `file` form field that is not an uploaded file means nothing was attached
        if request.url.path == "/api/ocr" and all(
            tuple(error.get("loc", ())) == ("body", "file") for error in exc.errors()
        ):
            return render(LocalValidationError(reason="no file uploaded"))
        body = ErrorResponse(
            error=HTTPStatus.UNPROCESSABLE_ENTITY.phrase,
            message="The request could not be validated.",
            details=jsonable_encoder(exc.errors()),
        )
        return JSONResponse(status_code=422, content=body.model_dump(exclude_none=True))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            body = NotFoundResponse(
                message="Nothing lives at this URL. Please check the path.",
                availableEndpoints=ENDPOINTS,
            )
            return JSONResponse(status_code=404, content=body.model_dump())
        try:
            phrase = HTTPStatus(exc.status_code).phrase
        except ValueError:
            phrase = "Error"
        body = ErrorResponse(error=phrase, message=str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", extra={"error": str(exc)})
        body = ErrorResponse(error="Internal Server Error", message="An unexpected error occurred.")
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    @app.get("/", response_model=ServiceInfoResponse)
    def index() -> ServiceInfoResponse:
        return ServiceInfoResponse(
            message="OCR relay is running",
            timestamp=utc_timestamp(),
            endpoints=ENDPOINTS,
        )

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            uptime=round(time.monotonic() - app.state.started_at, 3),
            timestamp=utc_timestamp(),
        )

    @app.post("/api/ocr")
    async def relay_ocr(request: Request, file: UploadFile | None = File(default=None)) -> JSONResponse:
        relay_config: RelayConfig = request.app.state.relay_config
        upload = await read_upload(file, relay_config.max_upload_bytes)
        result = await handle(upload, relay_config, request.app.state.upstream)
        return render(result)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
