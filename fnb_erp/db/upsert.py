from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from fnb_erp.db.base import Base

_CONFLICT_AWARE_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def insert_if_absent(
    db: Session,
    model: type[Base],
    *,
    values: dict[str, Any],
    index_elements: list[str],
) -> None:
    """Insert a row unless one with the same unique key already exists.

    Concurrent callers racing on first use both succeed; exactly one row wins.
    """
    dialect_name = db.get_bind().dialect.name
    insert_factory = _CONFLICT_AWARE_INSERTS.get(dialect_name)
    if insert_factory is None:
        raise NotImplementedError(f"insert_if_absent has no conflict-aware insert for {dialect_name}")
    db.execute(insert_factory(model).values(**values).on_conflict_do_nothing(index_elements=index_elements))
