"""Listing-based admission control for uploads.

This is an approximation: every check lists the store, so cost and latency grow
with the number of stored objects. The intended evolution is a locally cached
running count that only falls back to listing close to the limit.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

from useritems.config.runtime_config import ItemStoreSettings
from useritems.object_store.adapter import ObjectStoreAdapter, iter_list_pages
from useritems.user_items.errors import QuotaExceededError
from useritems.user_items.key_codec import KeyCodec
from useritems.user_items.models import ContentCategory, PresentationVariant

logger = logging.getLogger(__name__)


class QuotaGuard:
    def __init__(
        self,
        store: ObjectStoreAdapter,
        settings: Optional[ItemStoreSettings] = None,
        codec: Optional[KeyCodec] = None,
    ) -> None:
        self.store = store
        self.settings = settings or ItemStoreSettings()
        self.codec = codec or KeyCodec(self.settings.root_marker)

    def listings_until_limit(self, prefix: str, limit: int) -> Optional[int]:
        """Number of listing pages fetched before the count under prefix reached limit.

        Stops paging as soon as the running total reaches the limit; returns None
        when the whole prefix holds fewer than limit objects.
        """
        total = 0
        listings = 0
        for page in iter_list_pages(self.store, prefix, page_size=self.settings.list_page_size):
            listings += 1
            total += len(page.objects)
            if total >= limit:
                return listings
        return None

    def _enforce(self, prefix: str, limit: int, scope: str, message: str) -> None:
        listings = self.listings_until_limit(prefix, limit)
        if listings is not None:
            logger.warning(
                "Too many uploads under %s (scope=%s, limit=%d), performed %d listings",
                prefix,
                scope,
                limit,
                listings,
            )
            raise QuotaExceededError(f"{message}: {limit}", limit=limit, scope=scope)

    def check_user(self, user: str, user_id: str) -> None:
        self._enforce(
            self.codec.user_root(user, user_id),
            self.settings.max_files_per_user,
            "user",
            "Too many items stored for user, exceeded max files per user",
        )

    def check_global(self) -> None:
        self._enforce(
            self.codec.store_root(),
            self.settings.max_total_files,
            "global",
            "Too many items stored, exceeded max files for the whole system",
        )

    def check_category(self, user: str, user_id: str, category: Union[ContentCategory, str]) -> None:
        """Bound the number of originals (i.e. items) a user keeps in one category."""
        category = ContentCategory(category)
        limit = self.settings.category_quota(category.value)
        if limit is None:
            return
        self._enforce(
            self.codec.directory(user, user_id, category, PresentationVariant.ORIGINAL),
            limit,
            f"category:{category.value}",
            f"Too many {category.value} items stored for user",
        )

    def check(self, user: str, user_id: str) -> None:
        """Per-user then system-wide check; raises QuotaExceededError on the first breach."""
        self.check_user(user, user_id)
        self.check_global()
