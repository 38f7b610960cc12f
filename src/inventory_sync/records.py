"""Pure mutation operations over the inventory record set.

Every function takes the current items (or field definitions) and returns a new
list; inputs are never modified in place and no I/O happens here. Rejected
mutations raise :class:`~inventory_sync.errors.ValidationError` or
:class:`~inventory_sync.errors.RecordNotFound` before anything is built.
"""
from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Sequence
from typing import Literal

from .errors import RecordNotFound, ValidationError
from .schemas import (
    CustomFieldDefinition,
    CustomValue,
    InventoryItem,
    InventoryStats,
    ItemCreate,
    SizeVariant,
    VariantCreate,
)


def new_identifier() -> str:
    """Return an identifier unique within the process."""

    return uuid.uuid4().hex


def _require_text(value: str | None, label: str) -> str:
    candidate = (value or "").strip()
    if not candidate:
        raise ValidationError(f"{label} must not be empty")
    return candidate


def _clamp_quantity(value: int) -> int:
    return max(0, int(value))


def _index_of(items: Sequence[InventoryItem], item_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    raise RecordNotFound(f"Item '{item_id}' not found")


def _check_sku_available(
    items: Sequence[InventoryItem], sku: str, *, ignore_id: str | None = None
) -> None:
    for item in items:
        if item.id != ignore_id and item.sku == sku:
            raise ValidationError(f"SKU '{sku}' already exists")


def _build_variants(
    drafts: Iterable[VariantCreate], existing: Sequence[SizeVariant] = ()
) -> list[SizeVariant]:
    sizes = [draft for draft in drafts if draft.size.strip()]
    if not sizes:
        raise ValidationError("at least one size is required")
    variants: list[SizeVariant] = []
    for index, draft in enumerate(sizes):
        quantity = _clamp_quantity(draft.quantity)
        in_stock = draft.in_stock if draft.in_stock is not None else quantity > 0
        # Positions carried over from an edit keep their variant ids.
        variant_id = existing[index].id if index < len(existing) else new_identifier()
        variants.append(
            SizeVariant(
                id=variant_id,
                size=draft.size.strip(),
                quantity=quantity,
                in_stock=in_stock,
                location=draft.location.strip(),
            )
        )
    return variants


def _replace(
    items: Sequence[InventoryItem], index: int, item: InventoryItem
) -> list[InventoryItem]:
    updated = list(items)
    updated[index] = item
    return updated


def _replace_variant(
    items: Sequence[InventoryItem], item_id: str, variant_id: str, **changes
) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    item = items[index]
    if item.find_variant(variant_id) is None:
        raise RecordNotFound(f"Variant '{variant_id}' not found on item '{item_id}'")
    variants = [
        variant.model_copy(update=changes) if variant.id == variant_id else variant
        for variant in item.variants
    ]
    return _replace(items, index, item.model_copy(update={"variants": variants}))


# ----------------------------------------------------------------------
# Items
# ----------------------------------------------------------------------
def add_item(
    items: Sequence[InventoryItem], data: ItemCreate, *, unique_sku: bool = False
) -> list[InventoryItem]:
    sku = _require_text(data.sku, "SKU")
    title = _require_text(data.title, "title")
    variants = _build_variants(data.variants)
    if unique_sku:
        _check_sku_available(items, sku)
    item = InventoryItem(
        id=new_identifier(),
        sku=sku,
        title=title,
        image_url=(data.image_url or "").strip() or None,
        variants=variants,
        custom_fields=dict(data.custom_fields),
    )
    return [*items, item]


def edit_item(
    items: Sequence[InventoryItem],
    item_id: str,
    data: ItemCreate,
    *,
    unique_sku: bool = False,
) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    current = items[index]
    sku = _require_text(data.sku, "SKU")
    title = _require_text(data.title, "title")
    variants = _build_variants(data.variants, current.variants)
    if unique_sku:
        _check_sku_available(items, sku, ignore_id=item_id)
    updated = current.model_copy(
        update={
            "sku": sku,
            "title": title,
            "image_url": (data.image_url or "").strip() or None,
            "variants": variants,
            "custom_fields": dict(data.custom_fields),
        }
    )
    return _replace(items, index, updated)


def delete_item(items: Sequence[InventoryItem], item_id: str) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    return [item for position, item in enumerate(items) if position != index]


def update_sku(
    items: Sequence[InventoryItem],
    item_id: str,
    sku: str,
    *,
    unique_sku: bool = False,
) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    candidate = _require_text(sku, "SKU")
    if unique_sku:
        _check_sku_available(items, candidate, ignore_id=item_id)
    return _replace(items, index, items[index].model_copy(update={"sku": candidate}))


def update_title(
    items: Sequence[InventoryItem], item_id: str, title: str
) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    candidate = _require_text(title, "title")
    return _replace(items, index, items[index].model_copy(update={"title": candidate}))


def update_image_url(
    items: Sequence[InventoryItem], item_id: str, image_url: str | None
) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    value = (image_url or "").strip() or None
    return _replace(items, index, items[index].model_copy(update={"image_url": value}))


def update_custom_value(
    items: Sequence[InventoryItem],
    item_id: str,
    field_id: str,
    value: CustomValue | None,
) -> list[InventoryItem]:
    """Set (or clear, when ``value`` is ``None``) one custom value on an item."""

    index = _index_of(items, item_id)
    values = dict(items[index].custom_fields)
    if value is None:
        values.pop(field_id, None)
    else:
        values[field_id] = value
    return _replace(items, index, items[index].model_copy(update={"custom_fields": values}))


def import_items(
    items: Sequence[InventoryItem],
    imported: Iterable[InventoryItem],
    *,
    unique_sku: bool = False,
) -> list[InventoryItem]:
    """Append imported items, giving each a fresh item id."""

    additions = [item.model_copy(update={"id": new_identifier()}) for item in imported]
    if unique_sku:
        existing = {item.sku for item in items}
        clashes = sorted({item.sku for item in additions} & existing)
        if clashes:
            raise ValidationError(f"SKU already exists: {', '.join(clashes)}")
    return [*items, *additions]


# ----------------------------------------------------------------------
# Variants
# ----------------------------------------------------------------------
def add_variant(
    items: Sequence[InventoryItem], item_id: str, size: str
) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    item = items[index]
    variant = SizeVariant(
        id=new_identifier(),
        size=_require_text(size, "size"),
        quantity=0,
        in_stock=False,
        location="",
    )
    return _replace(items, index, item.model_copy(update={"variants": [*item.variants, variant]}))


def delete_variant(
    items: Sequence[InventoryItem], item_id: str, variant_id: str
) -> list[InventoryItem]:
    index = _index_of(items, item_id)
    item = items[index]
    if item.find_variant(variant_id) is None:
        raise RecordNotFound(f"Variant '{variant_id}' not found on item '{item_id}'")
    if len(item.variants) <= 1:
        raise ValidationError("an item must keep at least one size")
    variants = [variant for variant in item.variants if variant.id != variant_id]
    return _replace(items, index, item.model_copy(update={"variants": variants}))


def update_quantity(
    items: Sequence[InventoryItem],
    item_id: str,
    variant_id: str,
    *,
    quantity: int | None = None,
    delta: int | None = None,
) -> list[InventoryItem]:
    """Set an absolute quantity or apply a delta; the result is clamped at 0.

    ``in_stock`` always follows the resulting quantity.
    """

    if (quantity is None) == (delta is None):
        raise ValidationError("provide exactly one of quantity or delta")
    index = _index_of(items, item_id)
    variant = items[index].find_variant(variant_id)
    if variant is None:
        raise RecordNotFound(f"Variant '{variant_id}' not found on item '{item_id}'")
    target = quantity if quantity is not None else variant.quantity + int(delta or 0)
    clamped = _clamp_quantity(target)
    return _replace_variant(items, item_id, variant_id, quantity=clamped, in_stock=clamped > 0)


def update_location(
    items: Sequence[InventoryItem], item_id: str, variant_id: str, location: str
) -> list[InventoryItem]:
    return _replace_variant(items, item_id, variant_id, location=(location or "").strip())


# ----------------------------------------------------------------------
# Custom field definitions
# ----------------------------------------------------------------------
def custom_field_id(label: str) -> str:
    return re.sub(r"\s+", "_", label.strip().lower())


def add_custom_field(
    fields: Sequence[CustomFieldDefinition],
    label: str,
    field_type: Literal["text", "number"] = "text",
) -> list[CustomFieldDefinition]:
    clean_label = _require_text(label, "field name")
    field_id = custom_field_id(clean_label)
    if any(field.id == field_id for field in fields):
        raise ValidationError(f"custom field '{field_id}' already exists")
    return [*fields, CustomFieldDefinition(id=field_id, label=clean_label, type=field_type)]


def delete_custom_field(
    fields: Sequence[CustomFieldDefinition], field_id: str
) -> list[CustomFieldDefinition]:
    if not any(field.id == field_id for field in fields):
        raise RecordNotFound(f"Custom field '{field_id}' not found")
    return [field for field in fields if field.id != field_id]


# ----------------------------------------------------------------------
# Read-only helpers
# ----------------------------------------------------------------------
def filter_items(items: Sequence[InventoryItem], query: str | None) -> list[InventoryItem]:
    if not query:
        return list(items)
    needle = query.lower()
    return [
        item
        for item in items
        if needle in item.sku.lower()
        or needle in item.title.lower()
        or any(
            needle in variant.size.lower() or needle in variant.location.lower()
            for variant in item.variants
        )
    ]


def compute_stats(
    items: Sequence[InventoryItem], *, low_stock_threshold: int = 10
) -> InventoryStats:
    variants = [variant for item in items for variant in item.variants]
    return InventoryStats(
        total_items=len(items),
        low_stock_variants=sum(
            1 for variant in variants if 0 < variant.quantity < low_stock_threshold
        ),
        total_quantity=sum(variant.quantity for variant in variants),
        unique_locations=len({variant.location for variant in variants if variant.location}),
    )


__all__ = [
    "new_identifier",
    "add_item",
    "edit_item",
    "delete_item",
    "update_sku",
    "update_title",
    "update_image_url",
    "update_custom_value",
    "import_items",
    "add_variant",
    "delete_variant",
    "update_quantity",
    "update_location",
    "custom_field_id",
    "add_custom_field",
    "delete_custom_field",
    "filter_items",
    "compute_stats",
]
