"""Row sources for data-backed tables.

A table declaring ``data`` (connection, query, columns) is filled by a row
source while the normalizer waits on the ``tableNeedsData`` event.  A row
source is any callable ``source(connection, query, columns)`` returning an
iterable, an async iterable, or an awaitable of an iterable of rows.
"""

import copy
import inspect
import logging
import sqlite3
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any

from docprep.model.nodes import Table

logger = logging.getLogger(__name__)

RowSource = Callable[[Any, Any, list[Any]], Any]


def project_row(row: Any, columns: list[Any]) -> list[Any]:
    """Build table cells from a row.

    A column given as a text-node template (a mapping with ``text``) is
    copied with its ``text`` replaced by the row field it names; any other
    column is a field name or index into the row.
    """
    cells: list[Any] = []
    for column in columns:
        if isinstance(column, Mapping) and "text" in column:
            cell = copy.deepcopy(dict(column))
            cell["text"] = row[column["text"]]
        else:
            cell = row[column]
        cells.append(cell)
    return cells


async def fill_table_data(table: Table, source: RowSource) -> int:
    """Append every row produced by ``source`` to the table body.

    Returns the number of rows appended.  Errors raised by the source
    propagate; rows appended before the error stay in the body.
    """
    spec = table.data
    if spec is None:
        return 0

    rows = source(spec.connection, spec.query, spec.columns)
    if inspect.isawaitable(rows):
        rows = await rows

    count = 0
    if hasattr(rows, "__aiter__"):
        async for row in rows:
            table.body.append(project_row(row, spec.columns))
            count += 1
    else:
        for row in rows:
            table.body.append(project_row(row, spec.columns))
            count += 1

    table.data = None
    logger.info("Appended %d row(s) from table data source", count)
    return count


def table_data_listener(source: RowSource) -> Callable[..., Any]:
    """Return a ``tableNeedsData`` callback that fills tables from ``source``."""

    async def _on_table_needs_data(table: Table, context: Any = None) -> None:
        await fill_table_data(table, source)

    return _on_table_needs_data


class SqliteRowSource:
    """Row source reading rows from a SQLite database.

    ``connection`` is ``{"database": path}`` (or the path itself); ``query``
    is an SQL string or ``{"sql": ..., "params": [...]}``.  Relative database
    paths are resolved against ``base_dir``.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def __call__(self, connection: Any, query: Any, columns: list[Any]) -> Iterator:
        return self._rows(self._database(connection), query)

    def _database(self, connection: Any) -> str:
        if isinstance(connection, Mapping):
            connection = connection.get("database", "")
        database = str(connection)
        if database != ":memory:" and self.base_dir is not None:
            path = Path(database)
            if not path.is_absolute():
                database = str(self.base_dir / path)
        return database

    def _rows(self, database: str, query: Any) -> Iterator[sqlite3.Row]:
        if isinstance(query, Mapping):
            sql, params = query["sql"], tuple(query.get("params", ()))
        else:
            sql, params = query, ()

        conn = sqlite3.connect(database)
        conn.row_factory = sqlite3.Row
        try:
            logger.debug("Querying %s: %s", database, sql)
            yield from conn.execute(sql, params)
        finally:
            conn.close()
