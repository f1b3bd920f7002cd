"""
ItemService tests.

Tests cover:
- Create/update/delete happy paths and their audit entries
- Validation against the tenant's current columns
- Role gates and tenant isolation
- Notifications delivered only after commit
- Structured log events
"""

from uuid import uuid4

import pytest

from inventory_kernel.domain.notifications import NotificationKind
from inventory_kernel.exceptions import (
    InsufficientRoleError,
    ItemDataInvalidError,
    ItemNotFoundError,
    SchemaNotConfiguredError,
    UnauthorizedError,
)
from inventory_kernel.models.audit_log import AuditLogAction, AuditLogEntry
from inventory_kernel.models.item import InventoryItem
from inventory_kernel.services.item_service import ItemService


def _entries(session, tenant_id):
    return (
        session.query(AuditLogEntry)
        .filter(AuditLogEntry.tenant_id == tenant_id)
        .order_by(AuditLogEntry.created_at)
        .all()
    )


class TestCreateItem:

    def test_creates_item_with_audit_entry(self, session, item_service, owner_ctx, configured_schema):
        data = {"col_name": "Hammer", "col_qty": 5, "col_category": "Tools"}

        result = item_service.create_item(owner_ctx, data)

        item = session.get(InventoryItem, result.item_id)
        assert item.data == data
        assert item.created_by_id == owner_ctx.actor_id

        created = [e for e in _entries(session, owner_ctx.tenant_id)
                   if e.action == AuditLogAction.ITEM_CREATED.value]
        assert len(created) == 1
        entry = created[0]
        assert entry.id == result.audit_entry_id
        assert entry.item_id == result.item_id
        assert entry.item_name == "Hammer"
        assert entry.undoable is False
        assert entry.snapshot["data"] == data
        assert entry.snapshot["id"] == str(result.item_id)

    def test_stored_data_is_a_copy(self, session, item_service, owner_ctx, configured_schema):
        data = {"col_name": "Hammer", "col_qty": 5}
        result = item_service.create_item(owner_ctx, data)
        data["col_qty"] = 99
        assert session.get(InventoryItem, result.item_id).data["col_qty"] == 5

    def test_boss_may_create(self, item_service, boss_ctx, configured_schema):
        assert item_service.create_item(boss_ctx, {"col_name": "Saw"}).item_id

    def test_employee_may_not_create(self, item_service, employee_ctx, configured_schema):
        with pytest.raises(InsufficientRoleError):
            item_service.create_item(employee_ctx, {"col_name": "Saw"})

    def test_missing_identity(self, item_service, configured_schema):
        with pytest.raises(UnauthorizedError):
            item_service.create_item(None, {"col_name": "Saw"})

    def test_requires_schema(self, item_service, owner_ctx):
        with pytest.raises(SchemaNotConfiguredError, match="set up your inventory columns"):
            item_service.create_item(owner_ctx, {"col_name": "Saw"})

    def test_invalid_data_rejected_without_writes(
        self, session, item_service, owner_ctx, configured_schema, sink
    ):
        sink.calls.clear()
        with pytest.raises(ItemDataInvalidError) as exc_info:
            item_service.create_item(
                owner_ctx, {"col_qty": "lots", "col_category": "Garden"}
            )

        assert exc_info.value.messages == [
            "Name: Required",
            "Quantity: Expected a number",
            "Category: Invalid option. Expected 'Tools' | 'Parts', received 'Garden'",
        ]
        assert session.query(InventoryItem).count() == 0
        assert sink.calls == []

    def test_notifications_after_commit(self, item_service, owner_ctx, configured_schema, sink):
        sink.calls.clear()
        result = item_service.create_item(owner_ctx, {"col_name": "Saw"})

        assert sink.kinds() == [NotificationKind.ITEM_CREATED, NotificationKind.LOG_CREATED]
        kind, tenant, payload = sink.calls[0]
        assert tenant == owner_ctx.tenant_id
        assert payload["item_id"] == str(result.item_id)

    def test_logs_lifecycle(self, captured_logs, item_service, owner_ctx, configured_schema):
        item_service.create_item(owner_ctx, {"col_name": "Saw"})

        messages = [r["message"] for r in captured_logs()]
        assert "item_create_started" in messages
        assert "audit_entry_recorded" in messages
        assert "item_create_completed" in messages
        completed = next(r for r in captured_logs() if r["message"] == "item_create_completed")
        assert completed["tenant_id"] == str(owner_ctx.tenant_id)
        assert completed["actor_id"] == str(owner_ctx.actor_id)
        assert "correlation_id" in completed

    def test_rejection_is_logged_with_error_code(
        self, captured_logs, item_service, owner_ctx, configured_schema
    ):
        with pytest.raises(ItemDataInvalidError):
            item_service.create_item(owner_ctx, {})

        rejected = [r for r in captured_logs() if r["message"] == "item_create_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["level"] == "WARNING"
        assert rejected[0]["error_code"] == "ITEM_DATA_INVALID"


class TestUpdateItem:

    def test_update_records_field_changes(self, session, item_service, owner_ctx, make_item):
        item_id = make_item("Hammer", col_qty=5)

        result = item_service.update_item(
            owner_ctx, item_id, {"col_name": "Hammer", "col_qty": 7, "col_price": 25}
        )

        assert [c.field for c in result.changes] == ["col_qty"]
        entry = session.get(AuditLogEntry, result.audit_entry_id)
        assert entry.action == AuditLogAction.ITEM_UPDATED.value
        assert entry.undoable is True
        assert entry.changes == [
            {"field": "col_qty", "field_name": "Quantity", "old_value": 5, "new_value": 7}
        ]
        assert session.get(InventoryItem, item_id).data["col_qty"] == 7

    def test_noop_update_logs_nothing(self, session, item_service, owner_ctx, make_item):
        item_id = make_item("Hammer", col_qty=5)
        before = len(_entries(session, owner_ctx.tenant_id))

        result = item_service.update_item(
            owner_ctx, item_id, {"col_name": "Hammer", "col_qty": 5, "col_price": 25}
        )

        assert result.changes == ()
        assert result.audit_entry_id is None
        assert len(_entries(session, owner_ctx.tenant_id)) == before

    def test_removed_field_is_a_change_to_none(self, item_service, owner_ctx, make_item):
        item_id = make_item("Hammer", col_barcode="123")

        result = item_service.update_item(
            owner_ctx, item_id, {"col_name": "Hammer", "col_qty": 10, "col_price": 25}
        )

        (change,) = result.changes
        assert change.field == "col_barcode"
        assert change.old_value == "123"
        assert change.new_value is None

    def test_invalid_update_leaves_item_unchanged(self, session, item_service, owner_ctx, make_item):
        item_id = make_item("Hammer", col_qty=5)

        with pytest.raises(ItemDataInvalidError):
            item_service.update_item(owner_ctx, item_id, {"col_name": "Hammer", "col_qty": "x"})

        session.expire_all()
        assert session.get(InventoryItem, item_id).data["col_qty"] == 5

    def test_foreign_item_is_not_found(self, item_service, other_owner_ctx, make_item, schema_service, standard_columns):
        item_id = make_item("Hammer")
        schema_service.update_schema(other_owner_ctx, standard_columns)

        with pytest.raises(ItemNotFoundError):
            item_service.update_item(other_owner_ctx, item_id, {"col_name": "Stolen"})

    def test_malformed_id_is_not_found(self, item_service, owner_ctx, configured_schema):
        with pytest.raises(ItemNotFoundError):
            item_service.update_item(owner_ctx, "not-a-uuid", {"col_name": "x"})


class TestDeleteItem:

    def test_delete_keeps_snapshot(self, session, item_service, owner_ctx, make_item):
        item_id = make_item("Hammer", col_qty=3)

        result = item_service.delete_item(owner_ctx, item_id)

        assert session.get(InventoryItem, item_id) is None
        entry = session.get(AuditLogEntry, result.audit_entry_id)
        assert entry.action == AuditLogAction.ITEM_DELETED.value
        assert entry.undoable is True
        assert entry.item_name == "Hammer"
        assert entry.snapshot["data"]["col_qty"] == 3
        assert entry.snapshot["created_by_id"] == str(owner_ctx.actor_id)

    def test_delete_unknown_item(self, item_service, owner_ctx, configured_schema):
        with pytest.raises(ItemNotFoundError):
            item_service.delete_item(owner_ctx, uuid4())

    def test_delete_notifications(self, item_service, owner_ctx, make_item, sink):
        item_id = make_item("Hammer")
        sink.calls.clear()

        item_service.delete_item(owner_ctx, item_id)

        assert sink.kinds() == [NotificationKind.ITEM_DELETED, NotificationKind.LOG_CREATED]
        assert sink.calls[0][2] == {"item_id": str(item_id)}


class TestTransactionOwnership:

    def test_auto_commit_false_defers_notifications(
        self, session, deterministic_clock, sink, owner_ctx, configured_schema
    ):
        service = ItemService(
            session, clock=deterministic_clock, notifier=sink, auto_commit=False
        )
        sink.calls.clear()

        service.create_item(owner_ctx, {"col_name": "Saw"})

        assert sink.calls == []
        session.commit()
        assert service.run_deferred_notifications() == 2
        assert sink.kinds() == [NotificationKind.ITEM_CREATED, NotificationKind.LOG_CREATED]

    def test_failing_sink_does_not_undo_the_commit(
        self, session, deterministic_clock, failing_sink, owner_ctx, configured_schema, captured_logs
    ):
        service = ItemService(session, clock=deterministic_clock, notifier=failing_sink)

        result = service.create_item(owner_ctx, {"col_name": "Saw"})

        assert session.get(InventoryItem, result.item_id) is not None
        assert failing_sink.attempts == 2
        failures = [r for r in captured_logs() if r["message"] == "notification_failed"]
        assert len(failures) == 2
        assert failures[0]["exc_type"] == "ConnectionError"
