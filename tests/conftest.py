"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from opsconsole.core.auth.dependencies import get_optional_caller
from opsconsole.core.auth.schemas import Caller
from opsconsole.main import create_app
from tests.factories.caller import build_caller


@pytest.fixture
def make_caller() -> Callable[..., Caller]:
    """Factory fixture for callers with a fixed granted set."""
    return build_caller


@pytest.fixture
def app() -> FastAPI:
    """Create a fresh application with no authenticated caller.

    Tests authenticate through ``login_as``, which overrides
    ``get_optional_caller``; the database is never reached.
    """
    application = create_app()
    application.dependency_overrides[get_optional_caller] = lambda: None
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client bound to the app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def login_as(app: FastAPI) -> Callable[[Caller | None], None]:
    """Make every following request act on behalf of ``caller``."""

    def _login(caller: Caller | None) -> None:
        app.dependency_overrides[get_optional_caller] = lambda: caller

    return _login
