"""Shared fixtures for the soundraw-cli test suite."""

import contextlib

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as _TestServer

from .fakes import FakeBridge


@contextlib.asynccontextmanager
async def _serve(application: web.Application):
    server = _TestServer(application)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def serve():
    """Returns an async context manager running an aiohttp app on a local port."""
    return _serve


@pytest.fixture
def fake_bridge():
    return FakeBridge()
