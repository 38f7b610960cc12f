"""Pydantic schemas for inventory records, snapshots and the row store API."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

CustomValue = Union[int, float, str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    """Records are stored with camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SizeVariant(_WireModel):
    id: str
    size: str
    quantity: int = Field(0, ge=0)
    in_stock: bool = Field(False, alias="inStock")
    location: str = ""


class InventoryItem(_WireModel):
    id: str
    sku: str
    title: str
    image_url: str | None = Field(None, alias="imageUrl")
    variants: list[SizeVariant] = Field(..., min_length=1)
    custom_fields: dict[str, CustomValue] = Field(default_factory=dict, alias="customFields")

    def find_variant(self, variant_id: str) -> SizeVariant | None:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None


class CustomFieldDefinition(_WireModel):
    id: str
    label: str
    type: Literal["text", "number"] = "text"


class VariantCreate(BaseModel):
    """User input for one variant; ``in_stock`` defaults to ``quantity > 0``."""

    size: str
    quantity: int = 0
    location: str = ""
    in_stock: bool | None = None


class ItemCreate(BaseModel):
    """User input for creating or editing an item."""

    sku: str
    title: str
    image_url: str | None = None
    variants: list[VariantCreate] = Field(default_factory=list)
    custom_fields: dict[str, CustomValue] = Field(default_factory=dict)


class CacheSnapshot(BaseModel):
    inventory: list[InventoryItem] = Field(default_factory=list)
    custom_fields: list[CustomFieldDefinition] = Field(default_factory=list)
    cached_at: datetime = Field(default_factory=utcnow)

    def to_wire(self) -> dict:
        return {
            "inventory": [item.to_wire() for item in self.inventory],
            "custom_fields": [field.to_wire() for field in self.custom_fields],
            "cached_at": self.cached_at.isoformat(),
        }


class RemoteRow(BaseModel):
    identity: str
    inventory: list[InventoryItem] = Field(default_factory=list)
    custom_fields: list[CustomFieldDefinition] = Field(default_factory=list)
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SaveRowPayload(BaseModel):
    inventory: list[InventoryItem] = Field(default_factory=list)
    custom_fields: list[CustomFieldDefinition] = Field(default_factory=list)


class InventoryStats(BaseModel):
    total_items: int
    low_stock_variants: int
    total_quantity: int
    unique_locations: int


class HealthStatus(BaseModel):
    status: Literal["ok"] = "ok"
    environment: str


__all__ = [
    "CustomValue",
    "SizeVariant",
    "InventoryItem",
    "CustomFieldDefinition",
    "VariantCreate",
    "ItemCreate",
    "CacheSnapshot",
    "RemoteRow",
    "SaveRowPayload",
    "InventoryStats",
    "HealthStatus",
    "utcnow",
]
