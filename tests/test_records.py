from __future__ import annotations

import pytest

from inventory_sync import records
from inventory_sync.errors import RecordNotFound, ValidationError
from inventory_sync.schemas import InventoryItem, ItemCreate, VariantCreate


def _shirt(**overrides) -> ItemCreate:
    data = {
        "sku": "A1",
        "title": "Shirt",
        "variants": [
            VariantCreate(size="M", quantity=10, location="R1"),
            VariantCreate(size="L", quantity=0, location="R2"),
        ],
    }
    data.update(overrides)
    return ItemCreate(**data)


def _single(items: list[InventoryItem]) -> InventoryItem:
    assert len(items) == 1
    return items[0]


def test_add_item_builds_variants_and_derives_stock() -> None:
    items = records.add_item([], _shirt(sku="  A1 ", title=" Shirt "))

    item = _single(items)
    assert item.sku == "A1"
    assert item.title == "Shirt"
    assert [variant.size for variant in item.variants] == ["M", "L"]
    assert item.variants[0].in_stock is True
    assert item.variants[1].in_stock is False
    assert item.variants[0].id != item.variants[1].id


def test_add_item_does_not_modify_input() -> None:
    original: list[InventoryItem] = []
    records.add_item(original, _shirt())
    assert original == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"sku": "   "},
        {"title": ""},
        {"variants": []},
        {"variants": [VariantCreate(size="  ")]},
    ],
)
def test_add_item_rejects_invalid_input(overrides) -> None:
    with pytest.raises(ValidationError):
        records.add_item([], _shirt(**overrides))


def test_add_item_drops_blank_sizes() -> None:
    data = _shirt(variants=[VariantCreate(size=""), VariantCreate(size="S", quantity=2)])
    item = _single(records.add_item([], data))
    assert [variant.size for variant in item.variants] == ["S"]


def test_duplicate_sku_allowed_unless_enforced() -> None:
    items = records.add_item([], _shirt())
    assert len(records.add_item(items, _shirt())) == 2
    with pytest.raises(ValidationError):
        records.add_item(items, _shirt(), unique_sku=True)


def test_edit_item_keeps_variant_ids_by_position() -> None:
    items = records.add_item([], _shirt())
    item = items[0]
    edited = records.edit_item(
        items,
        item.id,
        _shirt(
            title="Polo",
            variants=[
                VariantCreate(size="M", quantity=3),
                VariantCreate(size="L", quantity=4),
                VariantCreate(size="XL", quantity=5),
            ],
        ),
    )

    updated = _single(edited)
    assert updated.id == item.id
    assert updated.title == "Polo"
    assert [variant.id for variant in updated.variants[:2]] == [v.id for v in item.variants]
    assert updated.variants[2].id not in {v.id for v in item.variants}


def test_edit_and_delete_unknown_item() -> None:
    with pytest.raises(RecordNotFound):
        records.edit_item([], "missing", _shirt())
    with pytest.raises(RecordNotFound):
        records.delete_item([], "missing")


def test_delete_item() -> None:
    items = records.add_item([], _shirt())
    items = records.add_item(items, _shirt(sku="B2"))
    remaining = records.delete_item(items, items[0].id)
    assert [item.sku for item in remaining] == ["B2"]


def test_last_variant_cannot_be_deleted() -> None:
    items = records.add_item([], _shirt())
    item = items[0]

    items = records.delete_variant(items, item.id, item.variants[0].id)
    remaining = _single(items)
    assert len(remaining.variants) == 1

    with pytest.raises(ValidationError):
        records.delete_variant(items, item.id, remaining.variants[0].id)


def test_added_variant_starts_empty() -> None:
    items = records.add_item([], _shirt())
    items = records.add_variant(items, items[0].id, " XL ")
    variant = items[0].variants[-1]
    assert variant.size == "XL"
    assert variant.quantity == 0
    assert variant.in_stock is False
    assert variant.location == ""


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({"quantity": 5}, 5),
        ({"quantity": -4}, 0),
        ({"delta": 3}, 13),
        ({"delta": -25}, 0),
        ({"quantity": 0}, 0),
    ],
)
def test_quantity_is_clamped_and_drives_stock(kwargs, expected) -> None:
    items = records.add_item([], _shirt())
    item = items[0]
    variant_id = item.variants[0].id

    items = records.update_quantity(items, item.id, variant_id, **kwargs)

    variant = items[0].find_variant(variant_id)
    assert variant is not None
    assert variant.quantity == expected
    assert variant.in_stock == (expected > 0)


def test_update_quantity_requires_one_mode() -> None:
    items = records.add_item([], _shirt())
    item = items[0]
    with pytest.raises(ValidationError):
        records.update_quantity(items, item.id, item.variants[0].id)
    with pytest.raises(ValidationError):
        records.update_quantity(items, item.id, item.variants[0].id, quantity=1, delta=1)
    with pytest.raises(RecordNotFound):
        records.update_quantity(items, item.id, "nope", quantity=1)


def test_field_updates() -> None:
    items = records.add_item([], _shirt())
    item = items[0]
    variant_id = item.variants[1].id

    items = records.update_sku(items, item.id, " Z9 ")
    items = records.update_title(items, item.id, "Tee")
    items = records.update_location(items, item.id, variant_id, " Shelf 4 ")
    items = records.update_image_url(items, item.id, "https://img.example/a.png")
    items = records.update_custom_value(items, item.id, "supplier", "ACME")

    updated = items[0]
    assert updated.sku == "Z9"
    assert updated.title == "Tee"
    assert updated.find_variant(variant_id).location == "Shelf 4"
    assert updated.image_url == "https://img.example/a.png"
    assert updated.custom_fields == {"supplier": "ACME"}

    items = records.update_custom_value(items, item.id, "supplier", None)
    assert items[0].custom_fields == {}

    with pytest.raises(ValidationError):
        records.update_sku(items, item.id, " ")
    with pytest.raises(ValidationError):
        records.update_title(items, item.id, "")


def test_update_sku_uniqueness_is_optional() -> None:
    items = records.add_item([], _shirt())
    items = records.add_item(items, _shirt(sku="B2"))

    assert records.update_sku(items, items[1].id, "A1")[1].sku == "A1"
    with pytest.raises(ValidationError):
        records.update_sku(items, items[1].id, "A1", unique_sku=True)
    # Keeping an item's own SKU is never a clash.
    assert records.update_sku(items, items[0].id, "A1", unique_sku=True)[0].sku == "A1"


def test_custom_field_definitions() -> None:
    fields = records.add_custom_field([], "  Unit Cost ", "number")
    assert fields[0].id == "unit_cost"
    assert fields[0].label == "Unit Cost"
    assert fields[0].type == "number"

    with pytest.raises(ValidationError):
        records.add_custom_field(fields, "unit   cost")
    with pytest.raises(ValidationError):
        records.add_custom_field(fields, "   ")

    assert records.delete_custom_field(fields, "unit_cost") == []
    with pytest.raises(RecordNotFound):
        records.delete_custom_field(fields, "supplier")


def test_import_items_assigns_fresh_ids() -> None:
    items = records.add_item([], _shirt())
    merged = records.import_items(items, [items[0]])
    assert len(merged) == 2
    assert merged[1].id != merged[0].id
    with pytest.raises(ValidationError):
        records.import_items(items, [items[0]], unique_sku=True)


def test_filter_and_stats() -> None:
    items = records.add_item([], _shirt())
    items = records.add_item(
        items,
        _shirt(sku="B2", title="Hat", variants=[VariantCreate(size="One", quantity=30, location="R1")]),
    )

    assert [item.sku for item in records.filter_items(items, "hat")] == ["B2"]
    assert [item.sku for item in records.filter_items(items, "r2")] == ["A1"]
    assert len(records.filter_items(items, "")) == 2

    stats = records.compute_stats(items, low_stock_threshold=20)
    assert stats.total_items == 2
    assert stats.low_stock_variants == 1
    assert stats.total_quantity == 40
    assert stats.unique_locations == 2


def test_public_names_are_the_record_operations() -> None:
    assert "uuid" not in records.__all__
    assert "ValidationError" not in records.__all__
    for name in records.__all__:
        assert getattr(records, name).__module__ == records.__name__
