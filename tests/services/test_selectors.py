"""
InventorySelector tests: tenant-scoped reads.
"""

from datetime import datetime, timezone
from uuid import uuid4

from inventory_kernel.models.audit_log import AuditLogAction
from inventory_kernel.models.operation import OperationType


class TestColumnsAndItems:

    def test_columns_absent_until_saved(self, selector, schema_service, owner_ctx):
        assert selector.get_columns(owner_ctx.tenant_id) is None
        schema_service.update_schema(owner_ctx, [])
        assert selector.get_columns(owner_ctx.tenant_id) == ()

    def test_columns_round_trip(self, selector, owner_ctx, configured_schema):
        columns = selector.get_columns(owner_ctx.tenant_id)
        assert [c.id for c in columns][:2] == ["col_name", "col_qty"]

    def test_items_in_creation_order(self, selector, owner_ctx, make_item):
        first = make_item("First")
        second = make_item("Second")

        assert [v.id for v in selector.list_items(owner_ctx.tenant_id)] == [first, second]

    def test_get_item_is_tenant_scoped(self, selector, owner_ctx, other_owner_ctx, make_item):
        item_id = make_item("Hammer")

        assert selector.get_item(owner_ctx.tenant_id, item_id).data["col_name"] == "Hammer"
        assert selector.get_item(other_owner_ctx.tenant_id, item_id) is None
        assert selector.get_item(owner_ctx.tenant_id, "garbage") is None


class TestBarcodeLookup:

    def test_trimmed_exact_match(self, selector, owner_ctx, make_item):
        make_item("Hammer", col_barcode="4006381333931")
        saw = make_item("Saw", col_barcode="5012345678900")

        found = selector.find_by_barcode(owner_ctx.tenant_id, "  5012345678900 ")

        assert found.id == saw

    def test_partial_code_does_not_match(self, selector, owner_ctx, make_item):
        make_item("Hammer", col_barcode="4006381333931")
        assert selector.find_by_barcode(owner_ctx.tenant_id, "400638") is None

    def test_without_barcode_column(self, selector, schema_service, owner_ctx):
        schema_service.update_schema(
            owner_ctx, [{"id": "col_name", "name": "Name", "type": "text", "role": "name"}]
        )
        assert selector.find_by_barcode(owner_ctx.tenant_id, "123") is None

    def test_blank_code(self, selector, owner_ctx, make_item):
        make_item("Hammer")
        assert selector.find_by_barcode(owner_ctx.tenant_id, "   ") is None


class TestLowStock:

    def test_minimum_and_fallback(self, selector, owner_ctx, make_item):
        under_min = make_item("Under", col_qty=4, col_min=5)
        make_item("Above", col_qty=6, col_min=5)
        at_fallback = make_item("Fallback", col_qty=3)
        make_item("Plenty", col_qty=4)
        make_item("Unknown", col_qty=None)

        low = selector.list_low_stock(owner_ctx.tenant_id)

        assert [v.id for v in low] == [under_min, at_fallback]

    def test_custom_fallback(self, selector, owner_ctx, make_item):
        item_id = make_item("Plenty", col_qty=8)
        assert [v.id for v in selector.list_low_stock(owner_ctx.tenant_id, fallback_threshold=10)] == [item_id]

    def test_without_quantity_column(self, selector, schema_service, owner_ctx):
        schema_service.update_schema(
            owner_ctx, [{"id": "col_name", "name": "Name", "type": "text", "role": "name"}]
        )
        assert selector.list_low_stock(owner_ctx.tenant_id) == []


class TestAuditEntries:

    def test_newest_first_with_filters(self, selector, item_service, owner_ctx, boss_ctx, make_item, deterministic_clock):
        hammer = make_item("Hammer")
        make_item("Saw")
        deterministic_clock.advance(1)
        deleted = item_service.delete_item(boss_ctx, hammer)

        entries = selector.list_audit_entries(owner_ctx.tenant_id)
        assert entries[0].id == deleted.audit_entry_id
        assert entries[-1].action == AuditLogAction.SCHEMA_UPDATED

        by_item = selector.list_audit_entries(owner_ctx.tenant_id, item_id=hammer)
        assert [e.action for e in by_item] == [AuditLogAction.ITEM_DELETED, AuditLogAction.ITEM_CREATED]

        by_actor = selector.list_audit_entries(owner_ctx.tenant_id, actor_id=boss_ctx.actor_id)
        assert [e.id for e in by_actor] == [deleted.audit_entry_id]

        created = selector.list_audit_entries(owner_ctx.tenant_id, action=AuditLogAction.ITEM_CREATED)
        assert len(created) == 2

    def test_time_window_and_paging(self, selector, owner_ctx, make_item):
        make_item("A")
        make_item("B")
        make_item("C")

        window = selector.list_audit_entries(
            owner_ctx.tenant_id,
            action=AuditLogAction.ITEM_CREATED,
            start=datetime(2024, 1, 1, 12, 0, 2, tzinfo=timezone.utc),
        )
        assert [e.item_name for e in window] == ["C", "B"]

        page = selector.list_audit_entries(
            owner_ctx.tenant_id, action=AuditLogAction.ITEM_CREATED, limit=1, offset=1
        )
        assert [e.item_name for e in page] == ["B"]

    def test_can_undo(self, selector, item_service, undo_service, owner_ctx, make_item):
        deleted = item_service.delete_item(owner_ctx, make_item("Hammer"))

        entry = selector.get_audit_entry(owner_ctx.tenant_id, deleted.audit_entry_id)
        assert entry.can_undo
        assert entry.snapshot["data"]["col_name"] == "Hammer"

        undo_service.undo(owner_ctx, deleted.audit_entry_id)
        entry = selector.get_audit_entry(owner_ctx.tenant_id, deleted.audit_entry_id)
        assert entry.undone_by_id == owner_ctx.actor_id
        assert not entry.can_undo

    def test_update_entry_exposes_changes(self, selector, item_service, owner_ctx, make_item):
        item_id = make_item("Hammer", col_qty=5)
        updated = item_service.update_item(
            owner_ctx, item_id, {"col_name": "Hammer", "col_qty": 6, "col_price": 25}
        )

        entry = selector.get_audit_entry(owner_ctx.tenant_id, updated.audit_entry_id)

        (change,) = entry.changes
        assert (change.field, change.old_value, change.new_value) == ("col_qty", 5, 6)

    def test_foreign_entry_hidden(self, selector, owner_ctx, other_owner_ctx, configured_schema):
        assert selector.get_audit_entry(other_owner_ctx.tenant_id, configured_schema.audit_entry_id) is None
        assert selector.get_audit_entry(owner_ctx.tenant_id, uuid4()) is None


class TestOperations:

    def test_filters(self, selector, receiving_service, sale_service, owner_ctx, make_item):
        item_id = make_item("Hammer", col_qty=5)
        received = receiving_service.receive(
            owner_ctx, "2024-02-01", [{"item_id": str(item_id), "quantity": 5}], supplier="Acme"
        )
        sold = sale_service.sell(owner_ctx, "2024-02-02", [{"item_id": str(item_id), "quantity": 1}])
        sale_service.undo_operation(owner_ctx, sold.operation_id)

        everything = selector.list_operations(owner_ctx.tenant_id)
        assert [op.id for op in everything] == [sold.operation_id, received.operation_id]

        sales = selector.list_operations(owner_ctx.tenant_id, op_type=OperationType.SALE)
        assert [op.id for op in sales] == [sold.operation_id]
        assert sales[0].undone_at is not None

        live = selector.list_operations(owner_ctx.tenant_id, include_undone=False)
        assert [op.id for op in live] == [received.operation_id]
        assert live[0].supplier == "Acme"

    def test_get_operation(self, selector, receiving_service, owner_ctx, other_owner_ctx, make_item):
        item_id = make_item("Hammer")
        received = receiving_service.receive(owner_ctx, "2024-02-01", [{"item_id": str(item_id), "quantity": 2}])

        view = selector.get_operation(owner_ctx.tenant_id, received.operation_id)
        assert view.type == OperationType.RECEIVING
        assert view.items[0]["quantity"] == 2
        assert view.total_qty == 2
        assert selector.get_operation(other_owner_ctx.tenant_id, received.operation_id) is None
