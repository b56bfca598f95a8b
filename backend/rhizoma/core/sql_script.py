"""SQL Script Parsing: turns a dump-style script into executable statements.

Invariants:
    - "-- " style comments are removed up to and including their line break
    - Statements end with ';' followed by a line break (one statement per line end)
    - Every literal "prefix_" token is replaced with the configured table prefix
    - Blank statements are dropped; order is preserved

Design Decisions:
    - Pure function, no file IO: Database.run_sql_script reads the file and executes
"""

import re

_COMMENT = re.compile(r"--.*[\n\r]+")
_STATEMENT_END = re.compile(r";[\n\r]+")

TABLE_PREFIX_TOKEN = "prefix_"


def split_sql_script(script: str, table_prefix: str) -> list[str]:
    """Split a script into prefixed statements, in file order."""
    script = _COMMENT.sub("", script)
    statements = []
    for raw in _STATEMENT_END.split(script):
        # last statement may end the file without a trailing line break
        statement = raw.strip().rstrip(";").rstrip()
        if not statement:
            continue
        statements.append(statement.replace(TABLE_PREFIX_TOKEN, table_prefix))
    return statements
