"""
SQL Server document store over pyodbc.

Each collection is a table in the configured schema:

    [_id]  NVARCHAR(64) PRIMARY KEY
    [seq]  BIGINT IDENTITY(1,1)     -- insertion order
    [doc]  NVARCHAR(MAX)            -- JSON document without _id

Equality conditions on document fields compile to JSON_VALUE comparisons,
so collections behave like the in-memory store for the operations the
pipelines need. Temporary tables are created lazily on first insert and
dropped with DROP TABLE guarded by OBJECT_ID, which makes drop idempotent.
"""

import json
import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pyodbc

from ..config.config_manager import DatabaseConfig
from ..config.processing_defaults import ProcessingDefaults
from ..exceptions import DatabaseConnectionError, PersistenceError, StorageError
from ..interfaces import CollectionInterface, DatabaseInterface
from ..models import DocumentSource

ID_FIELD = ProcessingDefaults.ID_FIELD


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


def _quote(identifier: str) -> str:
    return "[" + identifier.replace("]", "]]") + "]"


def _json_path(path: str) -> str:
    return "$." + ".".join('"' + part.replace('"', '\\"') + '"' for part in path.split("."))


def _json_param(value: Any) -> Any:
    """JSON_VALUE returns text; compare against the JSON scalar text of value."""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=_json_default)


class OdbcDatabase(DatabaseInterface):
    """
    A SQL Server database holding document tables.

    Args:
        config: Database configuration (connection string and target schema)
    """

    def __init__(self, config: DatabaseConfig):
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.schema = config.target_schema

    @classmethod
    def for_source(cls, base_config: DatabaseConfig, source: DocumentSource) -> "OdbcDatabase":
        """Database holding a document import source, using the source's credentials."""
        return cls(base_config.for_database(source.domain, source.user, source.password))

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections with automatic cleanup.

        Yields:
            pyodbc.Connection: Active database connection

        Raises:
            DatabaseConnectionError: If connection cannot be established
        """
        try:
            connection = pyodbc.connect(
                self.config.connection_string,
                autocommit=False,
                timeout=self.config.connection_timeout,
            )
        except pyodbc.Error as e:
            self.logger.error(f"Database connection failed: {e}")
            raise DatabaseConnectionError(f"Failed to connect to database: {e}")

        try:
            connection.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            connection.setdecoding(pyodbc.SQL_WCHAR, encoding='utf-8')
            connection.setencoding(encoding='utf-8')
            yield connection
        finally:
            try:
                connection.close()
            except pyodbc.Error:
                pass  # Ignore errors during cleanup

    def qualified_name(self, table_name: str) -> str:
        return f"{_quote(self.schema)}.{_quote(table_name)}"

    def collection(self, name: str) -> "OdbcCollection":
        return OdbcCollection(self, name)


class OdbcCollection(CollectionInterface):
    """Document table in a SQL Server database."""

    def __init__(self, database: OdbcDatabase, name: str):
        self.logger = logging.getLogger(__name__)
        self.database = database
        self.name = name
        self.qualified_name = database.qualified_name(name)
        self._created = False

    # -- helpers -----------------------------------------------------------

    def _object_id_sql(self) -> str:
        return f"OBJECT_ID(N'{self.qualified_name.replace(chr(39), chr(39) * 2)}', N'U')"

    def _where(self, query: Optional[Dict[str, Any]]) -> Tuple[str, List[Any]]:
        if not query:
            return "", []
        clauses, params = [], []
        for path, value in query.items():
            if path == ID_FIELD:
                clauses.append("[_id] = ?")
                params.append(str(value))
            elif value is None:
                clauses.append(f"JSON_VALUE([doc], '{_json_path(path)}') IS NULL")
            else:
                clauses.append(f"JSON_VALUE([doc], '{_json_path(path)}') = ?")
                params.append(_json_param(value))
        return " WHERE " + " AND ".join(clauses), params

    @staticmethod
    def _to_document(row) -> Dict[str, Any]:
        document = json.loads(row[1])
        document[ID_FIELD] = row[0]
        return document

    def _execute_write(self, sql: str, params: List[Any]) -> int:
        with self.database.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, params)
                affected = cursor.rowcount
                conn.commit()
                return affected
            except pyodbc.Error as e:
                conn.rollback()
                raise PersistenceError(f"Write to {self.qualified_name} failed: {e}")
            finally:
                cursor.close()

    def _query(self, sql: str, params: List[Any]) -> List[Any]:
        with self.database.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, params)
                return cursor.fetchall()
            except pyodbc.Error as e:
                raise StorageError(f"Query on {self.qualified_name} failed: {e}")
            finally:
                cursor.close()

    def _exists(self) -> bool:
        rows = self._query(f"SELECT {self._object_id_sql()}", [])
        return bool(rows) and rows[0][0] is not None

    def ensure_table(self) -> None:
        if self._created:
            return
        self._execute_write(
            f"IF {self._object_id_sql()} IS NULL "
            f"CREATE TABLE {self.qualified_name} ("
            f"[_id] NVARCHAR(64) NOT NULL PRIMARY KEY, "
            f"[seq] BIGINT IDENTITY(1,1) NOT NULL, "
            f"[doc] NVARCHAR(MAX) NOT NULL)",
            [],
        )
        self._created = True

    # -- CollectionInterface -----------------------------------------------

    def add(self, document: Dict[str, Any]) -> Any:
        self.ensure_table()
        document = dict(document)
        doc_id = document.pop(ID_FIELD, None) or uuid.uuid4().hex
        payload = json.dumps(document, default=_json_default, ensure_ascii=False)
        self._execute_write(f"INSERT INTO {self.qualified_name} ([_id], [doc]) VALUES (?, ?)",
                            [str(doc_id), payload])
        return str(doc_id)

    def find(self, query: Optional[Dict[str, Any]] = None,
             skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        if not self._exists():
            return []
        where, params = self._where(query)
        sql = f"SELECT [_id], [doc] FROM {self.qualified_name}{where} ORDER BY [seq] OFFSET ? ROWS"
        params.append(skip)
        if limit is not None:
            sql += " FETCH NEXT ? ROWS ONLY"
            params.append(limit)
        return [self._to_document(row) for row in self._query(sql, params)]

    def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        if not self._exists():
            return 0
        where, params = self._where(query)
        return self._query(f"SELECT COUNT(*) FROM {self.qualified_name}{where}", params)[0][0]

    def update(self, query: Dict[str, Any], patch: Dict[str, Any]) -> List[Any]:
        updated = []
        for document in self.find(query):
            doc_id = document.pop(ID_FIELD)
            document.update({k: v for k, v in patch.items() if k != ID_FIELD})
            payload = json.dumps(document, default=_json_default, ensure_ascii=False)
            self._execute_write(f"UPDATE {self.qualified_name} SET [doc] = ? WHERE [_id] = ?",
                                [payload, doc_id])
            updated.append(doc_id)
        return updated

    def remove(self, query: Dict[str, Any]) -> int:
        if not self._exists():
            return 0
        where, params = self._where(query)
        return self._execute_write(f"DELETE FROM {self.qualified_name}{where}", params)

    def cursor(self, query: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        if not self._exists():
            return
        where, params = self._where(query)
        with self.database.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(f"SELECT [_id], [doc] FROM {self.qualified_name}{where} ORDER BY [seq]", params)
                while True:
                    row = cursor.fetchone()
                    if row is None:
                        break
                    yield self._to_document(row)
            except pyodbc.Error as e:
                raise StorageError(f"Cursor on {self.qualified_name} failed: {e}")
            finally:
                cursor.close()

    def drop(self) -> bool:
        existed = self._exists()
        if existed:
            self._execute_write(f"IF {self._object_id_sql()} IS NOT NULL DROP TABLE {self.qualified_name}", [])
            self.logger.debug(f"Dropped table {self.qualified_name}")
        self._created = False
        return existed
