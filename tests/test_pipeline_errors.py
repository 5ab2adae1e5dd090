import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from interview_pipeline.core.errors import ConcurrencyError
from interview_pipeline.services.pipeline import _is_retryable


class PgLockNotAvailable(Exception):
    sqlstate = "55P03"


class PgSerializationFailure(Exception):
    pgcode = "40001"


def operational(orig: Exception) -> OperationalError:
    return OperationalError("SELECT 1", {}, orig)


@pytest.mark.parametrize(
    "orig",
    [
        PgLockNotAvailable("canceling statement due to lock timeout"),
        PgSerializationFailure("could not serialize access"),
        Exception(1205, "Lock wait timeout exceeded; try restarting transaction"),
        Exception(1213, "Deadlock found when trying to get lock"),
        Exception("database is locked"),
    ],
)
def test_lock_failures_are_retryable(orig):
    assert _is_retryable(operational(orig))


@pytest.mark.parametrize(
    "orig",
    [
        Exception("no such table: missing_table"),
        Exception(2013, "Lost connection to MySQL server during query"),
        Exception("server closed the connection unexpectedly"),
    ],
)
def test_other_operational_errors_are_not_retryable(orig):
    assert not _is_retryable(operational(orig))


def test_integrity_errors_are_not_retryable():
    assert not _is_retryable(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))


async def test_lock_timeout_in_transaction_becomes_concurrency_error(pipeline):
    with pytest.raises(ConcurrencyError) as excinfo:
        async with pipeline._transaction():
            raise operational(PgLockNotAvailable("canceling statement due to lock timeout"))
    assert isinstance(excinfo.value.__cause__, OperationalError)


async def test_schema_error_in_transaction_propagates(pipeline):
    with pytest.raises(OperationalError):
        async with pipeline._transaction() as session:
            await session.execute(text("SELECT * FROM missing_table"))
