# webdav_gateway/monitoring/slack_alerts.py
"""
Slack alerting for gateway failures an operator has to act on
(missing configuration, unreachable WebDAV server, unhandled exceptions).
"""
from typing import Any, Dict, Optional

import httpx

from webdav_gateway.config import settings
from webdav_gateway.monitoring.logger import log

# Slack truncates long messages anyway; probe logs can get verbose
MAX_CONTEXT_CHARS = 2500


def format_alert(message: str, context: Optional[Dict[str, Any]], severity: str, component: Optional[str], request_id: Optional[str]) -> str:
    text = f"[{settings.ENVIRONMENT}] [{severity}] [{component or 'gateway'}] {message}\nRequest ID: {request_id}"
    if context:
        rendered = "\n".join(f"{key}: {value}" for key, value in context.items())
        if len(rendered) > MAX_CONTEXT_CHARS:
            rendered = rendered[:MAX_CONTEXT_CHARS] + "..."
        text = f"{text}\n```{rendered}```"
    return text


async def send_slack_alert(message: str, context: Optional[Dict[str, Any]] = None, severity: str = "ERROR", component: str = None, request_id: str = None) -> bool:
    """Post an alert to the configured webhook. Never raises; returns whether it was sent."""
    webhook_url = settings.SLACK_WEBHOOK_URL
    if not webhook_url:
        log("WARNING", "Slack webhook URL not configured", component=component, request_id=request_id)
        return False
    payload = {"text": format_alert(message, context, severity, component, request_id)}
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            resp = await client.post(webhook_url, json=payload)
            resp.raise_for_status()
    except httpx.HTTPError as e:
        log("ERROR", f"Failed to send Slack alert: {e}", component=component, request_id=request_id)
        return False
    return True
