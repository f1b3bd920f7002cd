"""Engine and session_scope tests."""

import pytest

from inventory_kernel.db.engine import (
    get_engine,
    get_session,
    reset_engine,
    session_scope,
)
from inventory_kernel.models.schema import InventorySchema
from inventory_kernel.services.schema_service import SchemaService


def _schema_count() -> int:
    session = get_session()
    try:
        return session.query(InventorySchema).count()
    finally:
        session.close()


def test_accessors_require_initialization():
    reset_engine()
    with pytest.raises(RuntimeError, match="init_engine_from_url"):
        get_engine()
    with pytest.raises(RuntimeError):
        get_session()


def test_session_scope_commits(engine, deterministic_clock, owner_ctx, standard_columns, sink):
    with session_scope() as session:
        service = SchemaService(session, clock=deterministic_clock, notifier=sink, auto_commit=False)
        service.update_schema(owner_ctx, standard_columns)
        assert sink.calls == []

    assert _schema_count() == 1
    assert service.run_deferred_notifications() == 2


def test_session_scope_rolls_back(engine, deterministic_clock, owner_ctx, standard_columns, captured_logs):
    with pytest.raises(RuntimeError, match="boom"):
        with session_scope() as session:
            SchemaService(session, clock=deterministic_clock, auto_commit=False).update_schema(
                owner_ctx, standard_columns
            )
            raise RuntimeError("boom")

    assert _schema_count() == 0
    assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())
