"""Rebuild a user's logical items from a flat object store listing.

There is no metadata store yet; everything the catalog knows comes from the
keys themselves (see key_codec). Once a real index exists this module shrinks
to a lookup.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from useritems.config.runtime_config import ItemStoreSettings
from useritems.object_store.adapter import ObjectStoreAdapter, iter_list_objects
from useritems.user_items.key_codec import KeyCodec
from useritems.user_items.models import (
    ALT_TEXT_ATTR,
    CONTENT_CATEGORIES,
    DISPLAY_NAME_ATTR,
    PRESENTATION_VARIANTS,
    ContentCategory,
    LogicalItem,
    PresentationVariant,
    VariantLocation,
)

logger = logging.getLogger(__name__)

ItemLocations = Dict[ContentCategory, Dict[PresentationVariant, List[VariantLocation]]]


class ItemCatalog:
    def __init__(
        self,
        store: ObjectStoreAdapter,
        settings: Optional[ItemStoreSettings] = None,
        codec: Optional[KeyCodec] = None,
    ) -> None:
        self.store = store
        self.settings = settings or ItemStoreSettings()
        self.codec = codec or KeyCodec(self.settings.root_marker)

    def group_key(self, item_name: str) -> str:
        """Base name shared by every variant of one item (final extension stripped).

        A preferred rendition may carry a different extension than the upload
        (photo.png -> photo.jpg), so the extension cannot be part of the identity.
        """
        ext_index = item_name.rfind(".")
        if ext_index > 0:
            return item_name[:ext_index]
        if self.settings.legacy_extensionless_grouping:
            return ""
        return item_name

    def _list_locations(
        self,
        user: str,
        user_id: str,
        category: ContentCategory,
        variant: PresentationVariant,
    ) -> List[VariantLocation]:
        prefix = self.codec.directory(user, user_id, category, variant)
        found: Dict[str, VariantLocation] = {}
        for summary in iter_list_objects(self.store, prefix, page_size=self.settings.list_page_size):
            # some stores return the prefix itself as a zero-byte "folder" object
            if summary.key == prefix:
                logger.debug("Skipping %r because it looks like a folder, not an object", summary.key)
                continue
            decoded = self.codec.decode(summary.key)
            if decoded is None:
                logger.info("Skipping key %r: not an item location", summary.key)
                continue
            if decoded.category is not category or decoded.variant is not variant:
                logger.debug("Skipping %r: listed under %s but decodes elsewhere", summary.key, prefix)
                continue
            found[summary.key] = VariantLocation(
                key=summary.key,
                full_path=decoded.external_path,
                item_name=decoded.name,
            )
        return [found[k] for k in sorted(found)]

    def item_locations(self, user: str, user_id: str) -> ItemLocations:
        locations: ItemLocations = {}
        for category in CONTENT_CATEGORIES:
            for variant in PRESENTATION_VARIANTS:
                found = self._list_locations(user, user_id, category, variant)
                if found:
                    locations.setdefault(category, {})[variant] = found
        return locations

    def list_items(self, user: str, user_id: str) -> List[LogicalItem]:
        """Fold every stored variant of a user into logical items.

        Variants are applied in preview, original, preferred order so that a
        real preferred rendition always replaces the one seeded from the original.
        """
        items: Dict[Tuple[ContentCategory, str], LogicalItem] = {}
        for category, by_variant in self.item_locations(user, user_id).items():
            for variant in PRESENTATION_VARIANTS:
                for location in by_variant.get(variant, []):
                    item_key = self.group_key(location.item_name)
                    logger.debug(
                        "Got a location: %s for item with display name: %r for user: %s",
                        location.full_path,
                        item_key,
                        user,
                    )
                    item = items.get((category, item_key))
                    if item is None:
                        item = LogicalItem(category=category, display_name=item_key)
                        items[(category, item_key)] = item
                    item.set_location(variant, location)
                    if variant is PresentationVariant.PREVIEW:
                        item.add_attr(ALT_TEXT_ATTR, f"Preview of {item_key}")

        for (_, item_key), item in items.items():
            item.add_attr(DISPLAY_NAME_ATTR, item_key)
        return sorted(items.values(), key=lambda i: (CONTENT_CATEGORIES.index(i.category), i.display_name))
