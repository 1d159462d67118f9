"""Tests for the JSON logger, request context and Slack alerts."""
import json
import logging

import httpx
import pytest

from webdav_gateway.monitoring import slack_alerts
from webdav_gateway.monitoring.context import clear_request_context, get_request_context, set_request_context
from webdav_gateway.monitoring.logger import JsonFormatter, log


def test_formatter_renders_context_and_extras():
    record = logging.makeLogRecord({
        "msg": "Upload stored",
        "levelname": "INFO",
        "component": "gateway",
        "request_id": "req-1",
        "attempts": 2,
    })
    rendered = json.loads(JsonFormatter().format(record))
    assert rendered["message"] == "Upload stored"
    assert rendered["component"] == "gateway"
    assert rendered["request_id"] == "req-1"
    assert rendered["attempts"] == 2


def test_log_accepts_module_alias_and_reserved_names():
    # 'module' and 'name' collide with LogRecord attributes; must not raise
    log("INFO", "hello", module="tests", name="ignored", state="resolving")


def test_request_context_round_trip():
    clear_request_context()
    set_request_context(request_id="abc", operation="upload")
    assert get_request_context() == {"request_id": "abc", "operation": "upload"}
    clear_request_context()
    assert get_request_context() == {"request_id": None, "operation": None}


@pytest.mark.asyncio
async def test_slack_alert_skipped_without_webhook(monkeypatch):
    monkeypatch.setattr(slack_alerts.settings, "SLACK_WEBHOOK_URL", None)
    assert await slack_alerts.send_slack_alert("boom") is False


@pytest.mark.asyncio
async def test_slack_alert_posts_formatted_text(monkeypatch):
    posted = []

    def handler(request: httpx.Request) -> httpx.Response:
        posted.append(json.loads(request.content))
        return httpx.Response(200, text="ok")

    real_client = httpx.AsyncClient
    monkeypatch.setattr(slack_alerts.settings, "SLACK_WEBHOOK_URL", "https://hooks.slack.test/T000")
    monkeypatch.setattr(
        slack_alerts.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    sent = await slack_alerts.send_slack_alert(
        "WebDAV unreachable", context={"details": "PROPFIND x -> 503"}, component="gateway", request_id="r-9"
    )

    assert sent is True
    text = posted[0]["text"]
    assert "[ERROR] [gateway] WebDAV unreachable" in text
    assert "Request ID: r-9" in text
    assert "PROPFIND x -> 503" in text


@pytest.mark.asyncio
async def test_slack_alert_failure_returns_false(monkeypatch):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(slack_alerts.settings, "SLACK_WEBHOOK_URL", "https://hooks.slack.test/T000")
    monkeypatch.setattr(
        slack_alerts.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(lambda r: httpx.Response(500)), **kwargs),
    )
    assert await slack_alerts.send_slack_alert("boom") is False


def test_format_alert_truncates_long_context():
    text = slack_alerts.format_alert("m", {"details": "x" * 5000}, "ERROR", None, None)
    assert text.endswith("...```")
    assert len(text) < 5000


def test_formatter_redacts_credentials():
    record = logging.makeLogRecord({"msg": "config", "levelname": "INFO", "password": "s3cret"})
    rendered = json.loads(JsonFormatter().format(record))
    assert rendered["password"] == "***"
