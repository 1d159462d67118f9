# webdav_gateway/api/gateway.py
"""
WebDAV gateway endpoint.

Accepts a structured upload or a raw upload/download operation as JSON and
always answers with the gateway envelope.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from webdav_gateway.config import settings
from webdav_gateway.core.gateway_service import WebDAVGateway, envelope
from webdav_gateway.file_access.endpoint_resolver import EndpointCache
from webdav_gateway.monitoring.logger import log

router = APIRouter(tags=["webdav"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

# Only cross-request state besides configuration; disabled unless a TTL is set
_endpoint_cache = EndpointCache(ttl=settings.WEBDAV_ENDPOINT_CACHE_TTL)
_gateway = WebDAVGateway(endpoint_cache=_endpoint_cache)


def get_gateway() -> WebDAVGateway:
    return _gateway


@router.options("/webdav")
async def webdav_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/webdav")
async def webdav_operation(request: Request, gateway: WebDAVGateway = Depends(get_gateway)) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    try:
        body = await request.json()
    except ValueError as exc:
        log("WARNING", f"Rejected non-JSON body: {exc}", module="webdav_api", request_id=request_id)
        return JSONResponse(
            status_code=400,
            content=envelope(False, message="Invalid request", error="Request body must be valid JSON"),
            headers=CORS_HEADERS,
        )
    result = await gateway.handle(body)
    return JSONResponse(status_code=result.status_code, content=result.body, headers=CORS_HEADERS)
