"""Mapping between logical item coordinates and object store keys.

The store has no metadata index, so owner, category, variant and name all live
in the key:

    root/<user>/<user_id>/<category>/<variant>/<name>

Nothing outside this module builds or parses key strings.
"""
from __future__ import annotations

import logging
from typing import List, NamedTuple, Optional, Union

from useritems.user_items.models import ContentCategory, PresentationVariant

logger = logging.getLogger(__name__)

SEPARATOR = "/"
DEFAULT_ROOT_MARKER = "root"


class DecodedKey(NamedTuple):
    category: ContentCategory
    variant: PresentationVariant
    external_path: str
    name: str


class KeyCodec:
    def __init__(self, root_marker: str = DEFAULT_ROOT_MARKER) -> None:
        if not root_marker or SEPARATOR in root_marker:
            raise ValueError("root_marker must be a single non-empty path segment")
        self.root_marker = root_marker

    def store_root(self) -> str:
        return f"{self.root_marker}{SEPARATOR}"

    def user_root(self, user: str, user_id: str) -> str:
        return f"{self.root_marker}/{user}/{user_id}/"

    def directory(
        self,
        user: str,
        user_id: str,
        category: Union[ContentCategory, str],
        variant: Union[PresentationVariant, str],
    ) -> str:
        category = ContentCategory(category)
        variant = PresentationVariant(variant)
        return f"{self.user_root(user, user_id)}{category.value}/{variant.value}/"

    def encode(
        self,
        user: str,
        user_id: str,
        category: Union[ContentCategory, str],
        variant: Union[PresentationVariant, str],
        name: str,
    ) -> str:
        if not name:
            raise ValueError("item name must be non-empty")
        return self.directory(user, user_id, category, variant) + name

    def _meaningful_segments(self, key: str) -> Optional[List[str]]:
        """Segments below the root marker, or None when the marker is missing."""
        segments = key.split(SEPARATOR)
        meaningful: List[str] = []
        saw_root = False
        for index, segment in enumerate(segments):
            # the marker is the first segment, or the second after a leading "/"
            if segment == self.root_marker and index < 2 and not saw_root:
                saw_root = True
                continue
            if not segment.strip():
                continue
            meaningful.append(segment)
        if not saw_root:
            return None
        return meaningful

    def decode(self, key: str) -> Optional[DecodedKey]:
        """Recover (category, variant, external_path, name) from a store key.

        Returns None for anything that is not an item location: prefixes
        ("directories"), keys outside the root, unknown categories or variants,
        and names spanning more than one segment.
        """
        meaningful = self._meaningful_segments(key)
        if meaningful is None:
            logger.debug("Key %r is outside the %r root", key, self.root_marker)
            return None
        # user and user_id
        remainder = meaningful[2:]
        if len(remainder) < 3:
            return None
        if len(remainder) > 3:
            logger.debug("Key %r has extra path segments", key)
            return None
        raw_category, raw_variant, name = remainder
        try:
            category = ContentCategory(raw_category)
            variant = PresentationVariant(raw_variant)
        except ValueError:
            logger.debug("Key %r has unknown category/variant", key)
            return None
        return DecodedKey(
            category=category,
            variant=variant,
            external_path=SEPARATOR + SEPARATOR.join(meaningful),
            name=name,
        )
