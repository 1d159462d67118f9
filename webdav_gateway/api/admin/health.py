# webdav_gateway/api/admin/health.py
"""
Health endpoints for shallow and deep readiness checks.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.status import HTTP_200_OK, HTTP_503_SERVICE_UNAVAILABLE

from webdav_gateway import __version__
from webdav_gateway.api.gateway import get_gateway
from webdav_gateway.core.gateway_service import WebDAVGateway

router = APIRouter(prefix="/admin", tags=["health"])


@router.get("/health", status_code=HTTP_200_OK)
async def health() -> dict:
    """Shallow health endpoint."""
    return {"status": "ok", "version": __version__}


@router.get("/health/deep")
async def health_deep(gateway: WebDAVGateway = Depends(get_gateway)) -> JSONResponse:
    """
    Deep health endpoint.

    Checks:
    - WebDAV configuration is complete
    - A WebDAV endpoint can be resolved from the configured base URL
    """
    result = await gateway.health_check()
    content = {
        "status": "ready" if result.healthy else "degraded",
        "webdav": {
            "healthy": result.healthy,
            "message": result.message,
            "latency_ms": result.latency_ms,
            "details": result.details,
        },
    }
    return JSONResponse(
        status_code=HTTP_200_OK if result.healthy else HTTP_503_SERVICE_UNAVAILABLE,
        content=content,
    )
