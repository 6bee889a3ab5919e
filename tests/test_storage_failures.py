"""
Storage failures surface as StorageFailureError (HTTP 503), whichever layer
raised them: SQLAlchemy, the driver, or the network.
"""
import asyncio
import pytest
import pytest_asyncio

from timeseats.core.config import Settings
from timeseats.core.errors import StorageFailureError
from timeseats.db.database import build_engine, build_session_factory
from timeseats.repositories.sql import sql_uow_factory
from timeseats.services import build_services

# Nothing listens on port 1, so every connect attempt is refused.
UNREACHABLE_URL = "postgresql+asyncpg://u:p@127.0.0.1:1/x"


@pytest_asyncio.fixture
async def unreachable_services():
    engine = build_engine(Settings(DATABASE_URL=UNREACHABLE_URL))
    yield build_services(sql_uow_factory(build_session_factory(engine)))
    await engine.dispose()


class _FailingSession:
    def __init__(self, error):
        self.error = error
        self.closed = False

    async def commit(self):
        raise self.error

    async def rollback(self):
        pass

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_refused_connection_is_storage_failure(unreachable_services):
    with pytest.raises(StorageFailureError):
        await unreachable_services.products.list_products()


@pytest.mark.asyncio
async def test_refused_connection_on_write_is_storage_failure(unreachable_services):
    with pytest.raises(StorageFailureError):
        await unreachable_services.products.create_product("Yakisoba", 1000)


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [ConnectionResetError("reset by peer"), asyncio.TimeoutError()])
async def test_driver_error_on_commit_is_storage_failure(error):
    session = _FailingSession(error)
    uow = sql_uow_factory(lambda: session)()

    with pytest.raises(StorageFailureError) as exc_info:
        async with uow:
            pass

    assert exc_info.value.__cause__ is error
    assert session.closed
