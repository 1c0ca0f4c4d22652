"""Database Session Manager - rollback and SQLAlchemy error mapping."""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from secret_santa.core.errors import DrawNotFoundError, PersistenceError
from secret_santa.infrastructure.database import _to_persistence_error


async def test_sql_errors_become_persistence_errors(test_db_manager):
    with pytest.raises(PersistenceError) as exc:
        async with test_db_manager.session() as session:
            await session.execute(text("SELECT * FROM no_such_table"))

    assert exc.value.http_status == 500
    assert exc.value.code == "PERSISTENCE_ERROR"


async def test_domain_errors_pass_through(test_db_manager):
    with pytest.raises(DrawNotFoundError):
        async with test_db_manager.session():
            raise DrawNotFoundError("d-1")


async def test_health_check(test_db_manager):
    assert await test_db_manager.health_check() is True


@pytest.mark.parametrize(
    "error,operation",
    [
        (IntegrityError("INSERT", {}, Exception("dup")), "commit"),
        (OperationalError("SELECT", {}, Exception("gone")), "execute"),
    ],
)
def test_error_mapping_is_most_specific_first(error, operation):
    assert _to_persistence_error(error).operation == operation
