"""
Root conftest for all tests.

This sets up the test environment BEFORE any modules are imported.
"""

import os

import pytest


def pytest_configure(config):
    """
    Pytest hook that runs before test collection and module imports.

    This is critical - it sets environment variables BEFORE socialfed modules
    are imported, ensuring that PynamoDB models use test table names.
    """
    # Set test AWS credentials
    os.environ["AWS_ACCESS_KEY_ID"] = "test"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "test"
    os.environ["AWS_DEFAULT_REGION"] = "us-west-1"
    os.environ["AWS_DB_PREFIX"] = "test"

    # Unit tests run on the memory backend; point DynamoDB at a local instance
    # so that importing the models never reaches AWS
    if "AWS_DB_HOST" not in os.environ:
        os.environ["AWS_DB_HOST"] = "http://localhost:8001"


@pytest.fixture
def config():
    from socialfed.config import Config

    return Config(
        database="memory",
        fqdn="social.example",
        proto="https://",
        vapid_public_key="",
        vapid_private_key="",
        vapid_subject="mailto:admin@social.example",
    )


@pytest.fixture
def store(config):
    from socialfed.db import get_store

    return get_store(config)


@pytest.fixture
def hooks():
    from socialfed.hooks import HookRegistry

    return HookRegistry()


@pytest.fixture
def identity(store, config, hooks):
    from socialfed.identity import ActorIdentityManager

    return ActorIdentityManager(store, config, hooks)


@pytest.fixture
def alice(identity):
    return identity.create_actor("alice", display_name="Alice")


@pytest.fixture
def bob(identity):
    return identity.create_actor("bob")


@pytest.fixture(autouse=True)
def _clear_request_context():
    from socialfed import request_context

    request_context.clear_request_context()
    yield
    request_context.clear_request_context()
