"""
Tests for the environment configuration provider.
"""

import os
from unittest.mock import patch

import pytest

from sealedsession.config import EnvConfigProvider


def provider_with(env):
    return patch.dict(os.environ, env, clear=True)


def test_redis_defaults():
    with provider_with({}):
        config = EnvConfigProvider().get_redis_config()

    assert config.path is None
    assert config.port is None
    assert config.prefix == "sess:"
    assert config.connect_timeout == 10.0
    assert config.monitor_interval == 5.0
    assert config.to_client_config().options == {"db": 0}


def test_redis_port_from_kubernetes_service_link():
    with provider_with({"REDIS_HOST": "redis-master", "REDIS_PORT": "tcp://10.0.0.7:6380"}):
        config = EnvConfigProvider().get_redis_config()

    assert config.port == 6380
    client = config.to_client_config()
    assert client.host == "redis-master"
    assert client.port == 6380


def test_redis_host_defaults_port():
    with provider_with({"REDIS_HOST": "cache", "REDIS_PASSWORD": "pw", "REDIS_DB": "3"}):
        client = EnvConfigProvider().get_redis_config().to_client_config()

    assert client.port == 6379
    assert client.options == {"db": 3, "password": "pw"}


def test_redis_path_and_port_are_incoherent():
    with provider_with({"REDIS_PATH": "/tmp/redis.sock", "REDIS_PORT": "6379"}):
        config = EnvConfigProvider().get_redis_config()

    with pytest.raises(ValueError):
        config.to_client_config()


def test_session_secret_required():
    with provider_with({}):
        with pytest.raises(ValueError, match="SESSION_SECRET"):
            EnvConfigProvider().get_session_config()


def test_session_config():
    env = {
        "SESSION_SECRET": "s3cret",
        "SESSION_COOKIE_NAME": "sid",
        "SESSION_RESAVE": "true",
        "SESSION_REUSE_STALE_ID": "false",
        "SESSION_COOKIE_SECURE": "true",
        "SESSION_COOKIE_DOMAIN": "example.com",
        "SESSION_COOKIE_MAX_AGE": "3600000",
    }
    with provider_with(env):
        config = EnvConfigProvider().get_session_config()

    assert config.secret == "s3cret"
    assert config.cookie_name == "sid"
    assert config.resave is True
    assert config.save_uninitialized is False
    assert config.reuse_stale_id is False
    assert config.cookie_defaults() == {
        "secure": True,
        "domain": "example.com",
        "max_age": 3600000,
    }


def test_session_config_defaults():
    with provider_with({"SESSION_SECRET": "s3cret"}):
        config = EnvConfigProvider().get_session_config()

    assert config.cookie_name == "session:"
    assert config.reuse_stale_id is True
    assert config.cookie_defaults() == {"secure": False}


def test_api_config():
    with provider_with({"API_PORT": "9000", "LOG_LEVEL": "DEBUG"}):
        config = EnvConfigProvider().get_api_config()

    assert config.port == 9000
    assert config.host == "0.0.0.0"
    assert config.log_level == "DEBUG"
    assert config.skip_paths == {"/health": ["GET"]}


def test_api_config_skip_paths():
    env = {"SESSION_SKIP_PATHS": "/static:*, /docs, /hook:post|put,"}
    with provider_with(env):
        config = EnvConfigProvider().get_api_config()

    assert config.skip_paths == {
        "/health": ["GET"],
        "/static": ["*"],
        "/docs": ["GET"],
        "/hook": ["POST", "PUT"],
    }
