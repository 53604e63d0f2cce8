from typing import Any

from pydantic import BaseModel, Field


class OcrSuccessResponse(BaseModel):
    success: bool = True
    data: Any = None
    message: str
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Any = None


class UpstreamErrorResponse(BaseModel):
    error: str
    message: str
    details: Any = None
    status: int


class NotFoundResponse(BaseModel):
    error: str = "Not Found"
    message: str
    availableEndpoints: dict[str, str] = Field(default_factory=dict)


class ServiceInfoResponse(BaseModel):
    status: str = "OK"
    message: str
    timestamp: str
    endpoints: dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str = "healthy"
    uptime: float
    timestamp: str
