"""SQL Script Parsing: comments, statement boundaries and table prefixes.

Tests cover:
    - "--" comments stripped with their line break
    - Statements split on ';' + newline (both \n and \r\n)
    - Every "prefix_" replaced, blank statements dropped
"""

from rhizoma.core.sql_script import split_sql_script


def test_splits_on_semicolon_newline():
    script = "CREATE TABLE a (id INT);\nINSERT INTO a VALUES (1);\n"
    assert split_sql_script(script, "") == [
        "CREATE TABLE a (id INT)",
        "INSERT INTO a VALUES (1)",
    ]


def test_strips_comments():
    script = "-- schema dump\nCREATE TABLE a (id INT);\n-- trailing\n"
    assert split_sql_script(script, "") == ["CREATE TABLE a (id INT)"]


def test_windows_line_endings():
    script = "SELECT 1;\r\nSELECT 2;\r\n"
    assert split_sql_script(script, "") == ["SELECT 1", "SELECT 2"]


def test_replaces_every_prefix_token():
    script = "INSERT INTO prefix_a SELECT * FROM prefix_b;\n"
    assert split_sql_script(script, "rz_") == [
        "INSERT INTO rz_a SELECT * FROM rz_b",
    ]


def test_last_statement_without_newline():
    assert split_sql_script("SELECT 1;\nSELECT 2;", "") == ["SELECT 1", "SELECT 2"]


def test_blank_script_yields_nothing():
    assert split_sql_script("\n-- only a comment\n\n", "x_") == []


def test_multiline_statement_kept_whole():
    script = "CREATE TABLE a (\n  id INT,\n  name TEXT\n);\n"
    assert split_sql_script(script, "") == ["CREATE TABLE a (\n  id INT,\n  name TEXT\n)"]
