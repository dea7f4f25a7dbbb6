"""User item data models (Pydantic)."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field


class ContentCategory(str, Enum):
    """Coarse content classification; decides which plugin owns an upload."""
    IMAGE = "image"
    UNKNOWN = "unknown"


class PresentationVariant(str, Enum):
    """The context an individual stored rendition of an item is meant for."""
    PREVIEW = "preview"
    ORIGINAL = "original"
    PREFERRED = "preferred"


CONTENT_CATEGORIES: Tuple[ContentCategory, ...] = (ContentCategory.IMAGE, ContentCategory.UNKNOWN)
# Preferred must come after Original so a real preferred rendition replaces the seeded one.
PRESENTATION_VARIANTS: Tuple[PresentationVariant, ...] = (
    PresentationVariant.PREVIEW,
    PresentationVariant.ORIGINAL,
    PresentationVariant.PREFERRED,
)

ALT_TEXT_ATTR = "altText"
DISPLAY_NAME_ATTR = "display_name"


class VariantLocation(BaseModel):
    """Where one rendition lives: the store key, its external path and the bare name."""
    key: str
    full_path: str
    item_name: str


class LogicalItem(BaseModel):
    """One user-facing item, synthesized from the variants sharing a base name."""
    category: ContentCategory
    display_name: str
    variants: Dict[PresentationVariant, VariantLocation] = Field(default_factory=dict)
    attributes: Dict[str, str] = Field(default_factory=dict)

    def set_location(self, variant: PresentationVariant, location: VariantLocation) -> "LogicalItem":
        variant = PresentationVariant(variant)
        if variant is PresentationVariant.ORIGINAL:
            self.variants.setdefault(PresentationVariant.PREFERRED, location)
        self.variants[variant] = location
        return self

    @property
    def preview_location(self) -> Optional[VariantLocation]:
        return self.variants.get(PresentationVariant.PREVIEW)

    @property
    def original_location(self) -> Optional[VariantLocation]:
        return self.variants.get(PresentationVariant.ORIGINAL)

    @property
    def preferred_location(self) -> Optional[VariantLocation]:
        return self.variants.get(PresentationVariant.PREFERRED)

    def add_attr(self, key: str, value: str) -> "LogicalItem":
        self.attributes[key] = value
        return self

    def to_listing(self) -> Dict[str, Any]:
        """JSON-ready listing form: type, display_name, *_location (when set), attr."""
        listing: Dict[str, Any] = {"type": self.category.value, "display_name": self.display_name}
        for variant in PRESENTATION_VARIANTS:
            location = self.variants.get(variant)
            if location is not None:
                listing[f"{variant.value}_location"] = location.model_dump()
        listing["attr"] = dict(self.attributes)
        return listing


class UploadResult(BaseModel):
    """What add_item stored: the category chosen and the key written per variant."""
    category: ContentCategory
    display_name: str
    keys: Dict[PresentationVariant, str] = Field(default_factory=dict)
