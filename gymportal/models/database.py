"""Document store gateway.

Collections of JSON documents kept in a single sqlite table.  The query
builder mirrors the hosted document database the portal was written
against: equality filters, a single ordered field, ``start_at`` /
``end_at`` / ``start_after`` bounds and a limit.
"""
import json
import logging
import re
import sqlite3
import uuid
from contextlib import closing
from datetime import date, datetime, timezone

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class _ServerTimestamp:
    def __repr__(self):
        return 'SERVER_TIMESTAMP'


# Replaced with the UTC write time when a document is stored.
SERVER_TIMESTAMP = _ServerTimestamp()


class StoreError(Exception):
    """A document store operation failed (``unavailable``, ``permission-denied``)."""

    def __init__(self, code, message=None):
        self.code = code
        self.message = message or code
        super().__init__(self.message)


def utc_now_iso():
    """ISO-8601 UTC timestamp with millisecond precision (sorts lexically)."""
    now = datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f'{now.microsecond // 1000:03d}Z'


def _log_error(message, *args):
    if has_app_context():
        current_app.logger.error(message, *args)
    else:
        logger.error(message, *args)


def get_db_connection(db_path='gym_portal.db'):
    """Get database connection with row factory"""
    conn = sqlite3.connect(db_path, timeout=10)
    conn.row_factory = sqlite3.Row
    return conn


def execute_query(query, params=(), db_path='gym_portal.db', fetch=False):
    """Execute a database query with optional parameters"""
    try:
        with closing(get_db_connection(db_path)) as conn:
            cursor = conn.execute(query, params)
            if fetch:
                return cursor.fetchall()
            conn.commit()
            return cursor.lastrowid
    except sqlite3.Error as e:
        _log_error("DB Error: %s | Query: %s | Params: %s", e, query, params)
        raise


def init_db(db_path='gym_portal.db'):
    """Initialize database with the document and account tables"""
    with closing(sqlite3.connect(db_path)) as conn:
        cursor = conn.cursor()

        # One row per document; data holds the JSON body
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (collection, id)
            )
        ''')

        # Identity provider accounts
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS accounts (
                uid TEXT PRIMARY KEY,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                failed_attempts INTEGER DEFAULT 0,
                locked_until TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')
        conn.commit()


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _field_expr(field, ignore_case=False):
    if not _FIELD_RE.match(field or ''):
        raise ValueError(f"Invalid field name: {field!r}")
    expr = f"json_extract(data, '$.{field}')"
    return f"LOWER({expr})" if ignore_case else expr


def _fold(value, ignore_case):
    if ignore_case and isinstance(value, str):
        return value.lower()
    return value


class DocumentSnapshot:
    """A document id and its data as read from the store."""

    def __init__(self, collection, id, data):
        self.collection = collection
        self.id = id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None

    def get(self, field, default=None):
        if self._data is None:
            return default
        return self._data.get(field, default)

    def __repr__(self):
        return f"DocumentSnapshot({self.collection!r}, {self.id!r})"


class Cursor:
    """Position in an ordered result: the ordering value plus the document id."""

    def __init__(self, value, doc_id):
        self.value = value
        self.doc_id = doc_id

    @classmethod
    def from_snapshot(cls, snapshot, field):
        return cls(snapshot.get(field), snapshot.id)

    def to_list(self):
        return [self.value, self.doc_id]

    @classmethod
    def from_list(cls, pair):
        if not pair:
            return None
        return cls(pair[0], pair[1])

    def __eq__(self, other):
        return (isinstance(other, Cursor)
                and self.value == other.value and self.doc_id == other.doc_id)

    def __repr__(self):
        return f"Cursor({self.value!r}, {self.doc_id!r})"


class Query:
    """Immutable query over one collection; every builder call returns a copy."""

    def __init__(self, store, collection):
        self._store = store
        self._collection = collection
        self._filters = ()
        self._order = None
        self._start_at = None
        self._end_at = None
        self._start_after = None
        self._limit = None

    def _copy(self, **changes):
        clone = Query(self._store, self._collection)
        clone.__dict__.update(self.__dict__)
        for key, value in changes.items():
            setattr(clone, '_' + key, value)
        return clone

    def where(self, field, value):
        _field_expr(field)
        return self._copy(filters=self._filters + ((field, value),))

    def order_by(self, field, descending=False, ignore_case=False):
        _field_expr(field)
        return self._copy(order=(field, descending, ignore_case))

    def start_at(self, value):
        return self._copy(start_at=value)

    def end_at(self, value):
        return self._copy(end_at=value)

    def start_after(self, cursor):
        """Start strictly after a snapshot or a :class:`Cursor`."""
        return self._copy(start_after=cursor)

    def limit(self, count):
        return self._copy(limit=None if count is None else int(count))

    def _build(self, select):
        clauses = ['collection = ?']
        params = [self._collection]

        for field, value in self._filters:
            if value is None:
                clauses.append(f"{_field_expr(field)} IS NULL")
            else:
                clauses.append(f"{_field_expr(field)} = ?")
                params.append(value)

        order_sql = 'id ASC'
        if self._order:
            field, descending, ignore_case = self._order
            expr = _field_expr(field, ignore_case)
            clauses.append(f"{_field_expr(field)} IS NOT NULL")
            lower, upper = ('<=', '>=') if descending else ('>=', '<=')
            if self._start_at is not None:
                clauses.append(f"{expr} {lower} ?")
                params.append(_fold(self._start_at, ignore_case))
            if self._end_at is not None:
                clauses.append(f"{expr} {upper} ?")
                params.append(_fold(self._end_at, ignore_case))
            if self._start_after is not None:
                cursor = self._start_after
                if isinstance(cursor, DocumentSnapshot):
                    cursor = Cursor.from_snapshot(cursor, field)
                op = '<' if descending else '>'
                clauses.append(f"({expr} {op} ? OR ({expr} = ? AND id {op} ?))")
                value = _fold(cursor.value, ignore_case)
                params.extend([value, value, cursor.doc_id])
            direction = 'DESC' if descending else 'ASC'
            order_sql = f"{expr} {direction}, id {direction}"
        elif self._start_at is not None or self._end_at is not None or self._start_after is not None:
            raise ValueError("Cursor bounds require order_by()")

        sql = f"SELECT {select} FROM documents WHERE {' AND '.join(clauses)}"
        return sql, params, order_sql

    def get(self):
        """Run the query and return the ordered list of snapshots."""
        sql, params, order_sql = self._build('id, data')
        sql += f" ORDER BY {order_sql}"
        if self._limit is not None:
            sql += " LIMIT ?"
            params.append(self._limit)
        rows = self._store._read(sql, params)
        return [DocumentSnapshot(self._collection, r['id'], json.loads(r['data'])) for r in rows]

    def count(self):
        """Number of matching documents; the limit is not applied."""
        sql, params, _ = self._build('COUNT(*)')
        rows = self._store._read(sql, params)
        return rows[0][0] if rows else 0


class DocumentStore:
    """sqlite-backed document store shared by every model."""

    def __init__(self, db_path='gym_portal.db'):
        self.db_path = db_path

    def _read(self, sql, params=()):
        try:
            return execute_query(sql, tuple(params), self.db_path, fetch=True)
        except sqlite3.Error as e:
            raise StoreError('unavailable', str(e)) from e

    def _prepare(self, fields):
        data = {}
        for key, value in fields.items():
            data[key] = utc_now_iso() if value is SERVER_TIMESTAMP else value
        return data

    def collection(self, name):
        return Query(self, name)

    def get(self, collection, doc_id):
        rows = self._read(
            'SELECT data FROM documents WHERE collection = ? AND id = ?',
            (collection, doc_id))
        data = json.loads(rows[0]['data']) if rows else None
        return DocumentSnapshot(collection, doc_id, data)

    def set(self, collection, doc_id, fields, merge=False):
        """Write a document; with ``merge`` the fields are layered over the stored ones."""
        data = self._prepare(fields)
        try:
            with closing(get_db_connection(self.db_path)) as conn:
                if merge:
                    row = conn.execute(
                        'SELECT data FROM documents WHERE collection = ? AND id = ?',
                        (collection, doc_id)).fetchone()
                    if row:
                        merged = json.loads(row['data'])
                        merged.update(data)
                        data = merged
                conn.execute(
                    '''INSERT OR REPLACE INTO documents (collection, id, data, updated_at)
                       VALUES (?, ?, ?, CURRENT_TIMESTAMP)''',
                    (collection, doc_id, json.dumps(data, default=_json_default)))
                conn.commit()
        except sqlite3.Error as e:
            _log_error("DB Error writing %s/%s: %s", collection, doc_id, e)
            raise StoreError('unavailable', str(e)) from e
        return doc_id

    def add(self, collection, fields):
        """Store a new document under a generated id and return the id."""
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, fields)
        return doc_id

    def delete(self, collection, doc_id):
        try:
            execute_query('DELETE FROM documents WHERE collection = ? AND id = ?',
                          (collection, doc_id), self.db_path)
        except sqlite3.Error as e:
            raise StoreError('unavailable', str(e)) from e

    def count(self, collection, **equals):
        query = self.collection(collection)
        for field, value in equals.items():
            query = query.where(field, value)
        return query.count()


def get_store():
    """The document store bound to the current app."""
    return current_app.store
