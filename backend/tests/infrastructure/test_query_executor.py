"""Query Executor: counting, error normalization and pending-link resolution.

Tests cover:
    - query_count increments once per call, including failures
    - Empty query / missing link rejected as DatabaseError
    - Driver errors → DatabaseError with query kept for diagnostics
    - Driver text stays out of the client-facing message
    - Single-row requests copy out only the first row
    - Refused / lost connections → ConnectionLostError
    - A still-resolving link is awaited; its failure is surfaced, not swallowed
"""

import pytest
from sqlalchemy.exc import DBAPIError, OperationalError

from rhizoma.core.domain_types import QueryResult, Role
from rhizoma.core.errors import ConnectionLostError, DatabaseError, QUERY_FAILURE_MESSAGE
from rhizoma.core.connection_config import ConnectionConfigResolver
from rhizoma.infrastructure.link_manager import LinkManager
from rhizoma.infrastructure.query_executor import QueryExecutor, is_connection_lost


class _FailingLink:
    """Stands in for a link whose driver raises on every statement."""

    def __init__(self, error):
        self.error = error
        self.statements = []

    async def exec_driver_sql(self, query):
        self.statements.append(query)
        raise self.error


@pytest.fixture
async def links(sqlite_settings):
    manager = LinkManager(ConnectionConfigResolver(sqlite_settings))
    yield manager
    await manager.dispose()


@pytest.fixture
def executor():
    return QueryExecutor()


async def test_select_returns_rows_as_dicts(links, executor):
    link = await links.get_link(Role.READ)
    result = await executor.execute("SELECT 1 AS one, 'x' AS name", link)
    assert isinstance(result, QueryResult)
    assert result.rows == [{"one": 1, "name": "x"}]
    assert executor.query_count == 1


async def test_insert_reports_generated_id(links, executor):
    link = await links.get_link(Role.WRITE)
    await executor.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, v TEXT)", link)
    result = await executor.execute("INSERT INTO t (v) VALUES ('a')", link)
    assert result.insert_id == 1
    assert result.affected_rows == 1


async def test_single_row_request_copies_first_row_only(links, executor):
    link = await links.get_link(Role.READ)
    query = "SELECT 1 AS n UNION ALL SELECT 2 UNION ALL SELECT 3"

    single = await executor.execute(query, link, single=True)
    assert single.rows == [{"n": 1}]

    every = await executor.execute(query, link)
    assert every.rows == [{"n": 1}, {"n": 2}, {"n": 3}]


async def test_single_row_request_on_empty_result(links, executor):
    link = await links.get_link(Role.READ)
    result = await executor.execute("SELECT 1 AS n WHERE 1 = 0", link, single=True)
    assert result.rows == []


async def test_pending_link_is_awaited(links, executor):
    result = await executor.execute("SELECT 2 AS two", links.get_link(Role.READ))
    assert result.rows == [{"two": 2}]


async def test_sql_error_becomes_database_error(links, executor):
    link = await links.get_link(Role.READ)
    with pytest.raises(DatabaseError) as exc_info:
        await executor.execute("SELEC nonsense", link)
    err = exc_info.value
    assert not isinstance(err, ConnectionLostError)
    assert "syntax error" in err.message
    assert err.query == "SELEC nonsense"
    assert err.context.debug_info["driver_message"] == err.message
    assert "SELEC" not in str(err.to_response())
    assert err.to_response()["error"]["message"] == QUERY_FAILURE_MESSAGE
    assert executor.query_count == 1


async def test_empty_query_rejected_and_counted(links, executor):
    with pytest.raises(DatabaseError):
        await executor.execute("", links.get_link(Role.READ))
    with pytest.raises(DatabaseError):
        await executor.execute("SELECT 1", None)
    assert executor.query_count == 2


async def test_refused_connection_becomes_connection_lost(executor):
    link = _FailingLink(OperationalError("SELECT 1", {}, ConnectionRefusedError()))
    with pytest.raises(ConnectionLostError) as exc_info:
        await executor.execute("SELECT 1", link)
    assert exc_info.value.query == "SELECT 1"
    assert link.statements == ["SELECT 1"]


async def test_invalidated_connection_becomes_connection_lost(executor):
    error = DBAPIError("SELECT 1", {}, Exception("gone"), connection_invalidated=True)
    with pytest.raises(ConnectionLostError):
        await executor.execute("SELECT 1", _FailingLink(error))


async def test_other_driver_error_keeps_driver_message(executor):
    error = OperationalError("SELECT 1", {}, Exception(1146, "Table 'x' doesn't exist"))
    with pytest.raises(DatabaseError) as exc_info:
        await executor.execute("SELECT 1", _FailingLink(error))
    assert not isinstance(exc_info.value, ConnectionLostError)
    assert "doesn't exist" in exc_info.value.message


async def test_link_resolution_failure_surfaces(executor):
    async def broken_link():
        raise OSError("connection refused")

    with pytest.raises(DatabaseError) as exc_info:
        await executor.execute("SELECT 1", broken_link())
    assert exc_info.value.operation == "connect"
    assert executor.query_count == 1


def test_is_connection_lost_classification():
    assert is_connection_lost(ConnectionResetError())
    assert is_connection_lost(OperationalError("q", {}, Exception(2006, "gone away")))
    assert is_connection_lost(OperationalError("q", {}, Exception(2013, "lost")))
    assert not is_connection_lost(OperationalError("q", {}, Exception(1064, "syntax")))
    assert not is_connection_lost(ValueError("nope"))
