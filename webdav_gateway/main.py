# webdav_gateway/main.py
"""
FastAPI app for the WebDAV storage gateway: CORS, request ids, a last-resort
exception handler, and the gateway and health routers.
"""
import time
import traceback
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from webdav_gateway import __version__
from webdav_gateway.api.admin.health import router as health_router
from webdav_gateway.api.gateway import CORS_HEADERS, router as gateway_router
from webdav_gateway.core.gateway_service import envelope
from webdav_gateway.monitoring.context import clear_request_context, set_request_context
from webdav_gateway.monitoring.logger import log
from webdav_gateway.monitoring.slack_alerts import send_slack_alert

REQUEST_ID_HEADER = "X-Request-ID"

app = FastAPI(title="WebDAV Storage Gateway", version=__version__)

# Browser callers (the case-management frontend) post from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=[h.strip() for h in CORS_HEADERS["Access-Control-Allow-Headers"].split(",")],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    # Honour an upstream id so logs can be joined across services
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
    request.state.request_id = request_id
    clear_request_context()
    set_request_context(request_id=request_id)
    started = time.monotonic()
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    log(
        "INFO",
        f"{request.method} {request.url.path} -> {response.status_code}",
        component="http",
        request_id=request_id,
        duration_ms=round((time.monotonic() - started) * 1000, 1),
    )
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None)
    tb = traceback.format_exc()
    log("ERROR", f"Unhandled exception: {exc}", component="main", request_id=request_id, traceback=tb)
    await send_slack_alert(
        message=f"Critical error: {exc}",
        context={"path": request.url.path, "traceback": tb},
        severity="CRITICAL",
        component="main",
        request_id=request_id,
    )
    body = envelope(
        False,
        message="Internal server error",
        error="Internal Server Error",
        details="An unexpected error occurred.",
    )
    body["request_id"] = request_id
    return JSONResponse(status_code=500, content=body, headers=CORS_HEADERS)


app.include_router(gateway_router)
app.include_router(health_router)

log("INFO", f"WebDAV Storage Gateway {__version__} started", component="main")
