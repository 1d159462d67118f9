"""Tests for WebDAV configuration loading."""
import pytest

from webdav_gateway.config import Settings, config_presence, load_webdav_config
from webdav_gateway.file_access.errors import ConfigurationError


def make_settings(**overrides):
    values = {"WEBDAV_URL": None, "WEBDAV_USERNAME": None, "WEBDAV_PASSWORD": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_missing_variables_are_named():
    source = make_settings(WEBDAV_URL="https://dav.example.com")
    with pytest.raises(ConfigurationError) as exc_info:
        load_webdav_config(source)
    assert exc_info.value.details == "Missing required environment variables: WEBDAV_USERNAME, WEBDAV_PASSWORD"
    assert exc_info.value.http_status == 500


def test_empty_string_counts_as_missing():
    source = make_settings(WEBDAV_URL="https://dav.example.com", WEBDAV_USERNAME="", WEBDAV_PASSWORD="pw")
    assert config_presence(source) == {"WEBDAV_URL": True, "WEBDAV_USERNAME": False, "WEBDAV_PASSWORD": True}


def test_config_strips_url_and_hides_password():
    source = make_settings(WEBDAV_URL="  https://dav.example.com/crmdata ", WEBDAV_USERNAME="alice", WEBDAV_PASSWORD="s3cret")
    config = load_webdav_config(source)
    assert config.base_url == "https://dav.example.com/crmdata"
    assert "s3cret" not in repr(config)


def test_retry_attempts_must_be_positive():
    with pytest.raises(ValueError):
        make_settings(WEBDAV_UPLOAD_MAX_ATTEMPTS=0)
