"""Tests for nested collection provisioning."""
import httpx
import pytest

from webdav_gateway.file_access.protocols.webdav_protocol import WebDAVSession
from webdav_gateway.file_access.provisioner import PathProvisioner

ROOT = "https://dav.example.com/crmdata/"
SEGMENTS = ["Acme%20Corp", "Case-001", "Pleadings", "Motion"]


@pytest.mark.asyncio
async def test_provisioning_walks_prefixes_in_order(server, webdav_config):
    async with WebDAVSession(webdav_config, transport=server.transport) as dav:
        result = await PathProvisioner(dav).ensure(ROOT, SEGMENTS)

    assert server.urls("MKCOL") == [
        "https://dav.example.com/crmdata/Acme%20Corp",
        "https://dav.example.com/crmdata/Acme%20Corp/Case-001",
        "https://dav.example.com/crmdata/Acme%20Corp/Case-001/Pleadings",
        "https://dav.example.com/crmdata/Acme%20Corp/Case-001/Pleadings/Motion",
    ]
    assert result.collection_url == "https://dav.example.com/crmdata/Acme%20Corp/Case-001/Pleadings/Motion"
    assert [s.outcome for s in result.steps] == ["created"] * 4


@pytest.mark.asyncio
async def test_provisioning_twice_is_idempotent(server, webdav_config):
    # 201 on the first walk, 405 for every MKCOL after that
    server.script_method("MKCOL", 201, 201, 201, 201, 405)
    async with WebDAVSession(webdav_config, transport=server.transport) as dav:
        provisioner = PathProvisioner(dav)
        first = await provisioner.ensure(ROOT, SEGMENTS)
        second = await provisioner.ensure(ROOT, SEGMENTS)

    assert [s.outcome for s in first.steps] == ["created"] * 4
    assert [s.outcome for s in second.steps] == ["exists"] * 4
    assert not first.warnings and not second.warnings
    assert first.collection_url == second.collection_url


@pytest.mark.asyncio
async def test_conflict_counts_as_existing(server, webdav_config):
    server.script_method("MKCOL", 409)
    async with WebDAVSession(webdav_config, transport=server.transport) as dav:
        result = await PathProvisioner(dav).ensure(ROOT, ["Clients"])
    assert result.steps[0].outcome == "exists"


@pytest.mark.asyncio
async def test_unexpected_status_and_transport_errors_do_not_stop_the_walk(server, webdav_config):
    server.script_method("MKCOL", 403, httpx.ReadTimeout("slow"), 201)
    async with WebDAVSession(webdav_config, transport=server.transport) as dav:
        result = await PathProvisioner(dav).ensure(ROOT, ["a", "b", "c"])

    assert server.count("MKCOL") == 3
    assert [s.outcome for s in result.steps] == ["warning", "warning", "created"]
    assert result.steps[0].status == 403
    assert "ReadTimeout" in result.steps[1].error
    assert len(result.warnings) == 2
    assert result.collection_url == "https://dav.example.com/crmdata/a/b/c"


@pytest.mark.asyncio
async def test_no_segments_returns_root(server, webdav_config):
    async with WebDAVSession(webdav_config, transport=server.transport) as dav:
        result = await PathProvisioner(dav).ensure(ROOT, [])
    assert result.collection_url == ROOT
    assert server.count("MKCOL") == 0
