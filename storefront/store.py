"""
Relational store primitives used by the inventory and order services.

``SqlStore`` wraps one SQLAlchemy session (injected by the caller) and offers
a small find/insert/update vocabulary over the mapped tables. Rows come back
as plain dicts. Filters are tagged expressions (``Eq``, ``In``) instead of
loose mappings.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import bindparam, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, IntegrityError

from storefront.exceptions import InsertFailureError, StoreUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Eq:
    """``field = value``"""
    field: str
    value: Any

    def to_clause(self, table):
        return table.c[self.field] == self.value


@dataclass(frozen=True)
class In:
    """``field IN (values)``"""
    field: str
    values: Iterable[Any]

    def __post_init__(self):
        object.__setattr__(self, 'values', tuple(self.values))

    def to_clause(self, table):
        return table.c[self.field].in_(self.values)


@dataclass(frozen=True)
class SortBy:
    key: str
    descending: bool = False

    def to_clause(self, table):
        column = table.c[self.key]
        return column.desc() if self.descending else column.asc()


def _store_operation(f):
    """Translate driver errors into storefront errors."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except IntegrityError as e:
            logger.warning(f"{f.__name__} rejected by the database: {e.orig}")
            raise InsertFailureError('record', f'Could not write record: {e.orig}') from e
        except DBAPIError as e:
            logger.error(f"{f.__name__} failed: {e.orig}")
            raise StoreUnavailableError(f'Database error: {e.orig}') from e
    return wrapper


class SqlStore:
    """Find/insert/update operations over a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session
        self._depth = 0

    # -----------------------------------------------------
    # Transactions
    # -----------------------------------------------------

    @contextmanager
    def transaction(self):
        """
        Run a block as one unit of work: commit on success, rollback on error.

        Nested calls join the outermost transaction. Every multi-step
        workflow goes through here, which makes it the place to take row
        locks (see ``find_where_in(for_update=True)``).
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self._commit()
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth = 0

    @_store_operation
    def _commit(self):
        self.session.commit()

    # -----------------------------------------------------
    # Reads
    # -----------------------------------------------------

    @_store_operation
    def find(
        self,
        entity,
        filters: Sequence = (),
        sort_by: Optional[SortBy] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Find rows of ``entity`` matching all ``filters``.

        If no limit is provided (or 0) then all matching rows are returned.
        """
        table = entity.__table__
        stmt = select(table)
        clauses = [f.to_clause(table) for f in filters]
        if clauses:
            stmt = stmt.where(*clauses)
        if sort_by:
            stmt = stmt.order_by(sort_by.to_clause(table))
        if limit:
            stmt = stmt.limit(int(limit))
        if skip:
            stmt = stmt.offset(int(skip))

        logger.debug(f"find: {stmt}")
        return [dict(row) for row in self.session.execute(stmt).mappings()]

    def find_one(self, entity, filters: Sequence = ()) -> Optional[Dict[str, Any]]:
        """Same as find but limited to one row; None if nothing matched."""
        rows = self.find(entity, filters, limit=1)
        return rows[0] if rows else None

    @_store_operation
    def find_where_in(self, entity, field: str, values: Iterable[Any], for_update: bool = False) -> List[Dict[str, Any]]:
        """Rows whose ``field`` is one of ``values``, optionally locked FOR UPDATE."""
        table = entity.__table__
        stmt = select(table).where(In(field, values).to_clause(table))
        if for_update:
            stmt = stmt.with_for_update()

        logger.debug(f"findWhereIn: {stmt}")
        return [dict(row) for row in self.session.execute(stmt).mappings()]

    # -----------------------------------------------------
    # Writes
    # -----------------------------------------------------

    def insert_one(self, entity, row: Dict[str, Any]) -> int:
        """Insert one row. Returns the number of affected rows (0 on duplicate key)."""
        if not row:
            raise ValueError('invalid insert data')
        return self._insert(entity, row)

    def insert_many(self, entity, rows: Sequence[Dict[str, Any]]) -> int:
        """Insert rows in one batch. Returns the number of affected rows."""
        if not rows:
            raise ValueError('invalid insert data')
        return self._insert(entity, list(rows))

    @_store_operation
    def _insert(self, entity, params):
        table = entity.__table__
        stmt = self._insert_ignore(table)
        logger.debug(f"insert into {table.name}: {params}")

        result = self.session.execute(stmt, params)
        affected = result.rowcount
        if affected is None or affected < 0:
            # Unconfirmed writes count as none; callers roll the transaction back.
            logger.warning(f"insert into {table.name}: driver reported no row count")
            return 0
        return affected

    def _insert_ignore(self, table):
        """INSERT that skips rows colliding with an existing key."""
        dialect = self.session.get_bind().dialect.name
        if dialect == 'sqlite':
            return sqlite.insert(table).on_conflict_do_nothing()
        if dialect == 'postgresql':
            return postgresql.insert(table).on_conflict_do_nothing()
        if dialect in ('mysql', 'mariadb'):
            return table.insert().prefix_with('IGNORE')
        return table.insert()

    @_store_operation
    def update_many(self, entity, filters: Sequence, patch: Dict[str, Any]) -> int:
        """Update rows matching ``filters`` with ``patch``. Returns rows matched."""
        if not filters:
            raise ValueError('invalid filters data')
        if not patch:
            raise ValueError('invalid update data')

        table = entity.__table__
        stmt = table.update().where(*[f.to_clause(table) for f in filters]).values(**patch)
        logger.debug(f"update sql: {stmt}")
        return self.session.execute(stmt).rowcount

    def update_one(self, entity, filters: Sequence, patch: Dict[str, Any]) -> int:
        """Same as update_many; ``filters`` are expected to identify one row."""
        return self.update_many(entity, filters, patch)

    @_store_operation
    def delete_all(self, entity) -> int:
        table = entity.__table__
        logger.debug(f"delete from {table.name}")
        return self.session.execute(table.delete()).rowcount

    # -----------------------------------------------------
    # Raw SQL
    # -----------------------------------------------------

    @_store_operation
    def raw_query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Arbitrary statement with named parameters (``:name``).

        List, tuple or set values are bound as expanding parameters, so
        ``WHERE id IN :ids`` works with ``{'ids': [...]}``.

        Returns rows for SELECT-like statements, an empty list otherwise.
        """
        params = dict(params or {})
        stmt = text(sql)

        expanding = [key for key, value in params.items() if isinstance(value, (list, tuple, set, frozenset))]
        if expanding:
            stmt = stmt.bindparams(*[bindparam(key, expanding=True) for key in expanding])
            for key in expanding:
                params[key] = list(params[key])

        logger.debug(f"query: {sql.strip()} params={params}")
        result = self.session.execute(stmt, params)
        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings()]
