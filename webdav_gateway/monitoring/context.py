# webdav_gateway/monitoring/context.py
"""
Context helpers using contextvars for request/operation propagation.

Values set here are also bound into structlog's contextvars so protocol-layer
events carry the same request id as the JSON logger.
"""
import contextvars

import structlog

request_id_var = contextvars.ContextVar("request_id", default=None)
operation_var = contextvars.ContextVar("operation", default=None)

def set_request_context(request_id=None, operation=None):
    if request_id is not None:
        request_id_var.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)
    if operation is not None:
        operation_var.set(operation)
        structlog.contextvars.bind_contextvars(operation=operation)

def clear_request_context():
    request_id_var.set(None)
    operation_var.set(None)
    structlog.contextvars.clear_contextvars()

def get_request_context():
    return {
        "request_id": request_id_var.get(),
        "operation": operation_var.get(),
    }
