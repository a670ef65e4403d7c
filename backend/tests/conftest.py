"""
Global pytest configuration and fixtures for agentloop tests
"""

import logging

import pytest


AGENT_ENV_VARS = (
    "AGENT_CONFIG_PATH",
    "AGENT_MODEL",
    "AGENT_MAX_STEPS",
    "AGENT_WORKSPACE_ROOT",
)


@pytest.fixture(autouse=True)
def isolate_agent_env(monkeypatch):
    """Keep a developer's shell settings out of the tests"""
    for name in AGENT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(scope="session", autouse=True)
def agentloop_log_level():
    """Let caplog see agentloop INFO records"""
    logger = logging.getLogger("agentloop")
    previous = logger.level
    logger.setLevel(logging.INFO)
    yield
    logger.setLevel(previous)
