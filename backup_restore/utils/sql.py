"""
SQL Dump Utilities

Splits a SQL dump into individual statements. No parsing is done beyond
statement boundaries.
"""

from typing import List


def split_sql_statements(sql: str) -> List[str]:
    """
    Split SQL text into semicolon-delimited statements.

    Semicolons inside single-quoted, double-quoted or backtick-quoted
    literals and inside comments do not end a statement. Whitespace-only
    and comment-only fragments are dropped. The terminating semicolon is
    not included.

    Args:
        sql: Contents of a dump file

    Returns:
        Statements in dump order

    Example:
        ```python
        split_sql_statements("INSERT INTO t VALUES ('a;b'); DELETE FROM t;")
        # ["INSERT INTO t VALUES ('a;b')", "DELETE FROM t"]
        ```
    """
    statements: List[str] = []
    current: List[str] = []
    has_code = False
    quote = None
    i = 0
    n = len(sql)

    while i < n:
        ch = sql[i]

        if quote:
            current.append(ch)
            if ch == "\\" and quote != "`" and i + 1 < n:
                current.append(sql[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        # Line comments: "-- " and "#"
        if (ch == "-" and sql.startswith("--", i)) or ch == "#":
            end = sql.find("\n", i)
            end = n if end == -1 else end
            current.append(sql[i:end])
            i = end
            continue

        # Block comments, including MySQL /*!40101 ... */ hints
        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            comment = sql[i:end]
            current.append(comment)
            if comment.startswith("/*!"):
                has_code = True
            i = end
            continue

        if ch == ";":
            if has_code:
                statements.append("".join(current).strip())
            current = []
            has_code = False
            i += 1
            continue

        if ch in ("'", '"', "`"):
            quote = ch
        if not ch.isspace():
            has_code = True
        current.append(ch)
        i += 1

    if has_code:
        statements.append("".join(current).strip())

    return statements
