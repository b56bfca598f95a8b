"""Error Hierarchy: codes, envelopes and diagnostic payloads.

Tests cover:
    - Each error kind carries a stable code and HTTP status
    - Query text and driver messages kept for diagnostics but absent from the REST envelope
    - ScriptExecutionError aggregates statement failures in order
"""

from rhizoma.core.errors import (
    ConfigError, ConnectionLostError, DatabaseError, ErrorCategory,
    InstallationError, QUERY_FAILURE_MESSAGE, RhizomaError, SCRIPT_FAILURE_MESSAGE,
    ScriptExecutionError,
)


def test_database_error_keeps_query_out_of_response():
    err = DatabaseError("no such table: users", "query", "SELECT * FROM users")
    assert err.query == "SELECT * FROM users"
    assert err.context.debug_info == {"query": "SELECT * FROM users"}
    assert "SELECT" not in str(err.to_response())
    assert err.to_response()["error"]["code"] == "DATABASE_ERROR"
    assert err.to_response()["error"]["message"] == QUERY_FAILURE_MESSAGE
    assert err.message == "no such table: users"
    assert err.http_status == 503


def test_connection_lost_is_a_database_error():
    err = ConnectionLostError("SELECT 1")
    assert isinstance(err, DatabaseError)
    assert err.code == "DATABASE_CONNECTION_LOST"
    assert err.message == "Connection to database was lost."
    assert err.to_response()["error"]["message"] == "Connection to database was lost."


def test_script_error_aggregates_failures():
    err = ScriptExecutionError(["bad one", "bad two"])
    assert isinstance(err, DatabaseError)
    assert err.failures == ["bad one", "bad two"]
    assert err.message == "There were a number of issues: {bad one}; {bad two};"
    assert err.operation == "script"
    assert "bad one" not in str(err.to_response())
    assert err.to_response()["error"]["message"] == SCRIPT_FAILURE_MESSAGE


def test_installation_error_is_distinct_from_database_errors():
    err = InstallationError("not installed")
    assert isinstance(err, RhizomaError)
    assert not isinstance(err, DatabaseError)
    assert err.code == "NOT_INSTALLED"
    assert err.category is ErrorCategory.INSTALLATION


def test_config_error_names_field():
    err = ConfigError("Missing database setting 'host'", "host")
    assert err.field == "host"
    assert err.to_response()["error"]["category"] == "configuration"


def test_database_error_without_query_keeps_its_message_public():
    err = DatabaseError("Database link could not be resolved", "connect")
    assert err.to_response()["error"]["message"] == "Database link could not be resolved"
