from __future__ import annotations

from sqlalchemy import inspect

from healthpipe.db.engine import make_engine
from healthpipe.db.schema import TABLE_ORDER, create_tables, database_exists, drop_tables


def test_create_is_idempotent_and_drop_resets(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'nested' / 'store.db'}")
    assert not database_exists(engine)

    create_tables(engine)
    create_tables(engine)
    assert database_exists(engine)
    assert set(inspect(engine).get_table_names()) == set(TABLE_ORDER)

    drop_tables(engine)
    assert not database_exists(engine)
    assert inspect(engine).get_table_names() == []
    engine.dispose()


def test_parent_table_comes_first():
    assert TABLE_ORDER[0] == "health_records"
    assert len(TABLE_ORDER) == 8
