"""Dispatch an upload to the first artifact plugin that claims it."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from useritems.user_items.errors import EmptyResultError
from useritems.user_items.models import ContentCategory, PresentationVariant
from useritems.user_items.plugins import ArtifactPlugin, PassthroughPlugin, VariantMap

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    variants: VariantMap
    plugin: ArtifactPlugin

    @property
    def category(self) -> ContentCategory:
        return self.plugin.content_category()

    @property
    def preferred_extension(self) -> str:
        return self.plugin.preferred_extension()


class ArtifactPipeline:
    """Ordered plugin list; the first plugin whose can_handle() is true is used exclusively."""

    def __init__(self, plugins: Sequence[ArtifactPlugin]) -> None:
        self.plugins = list(plugins)
        self.fallback = PassthroughPlugin()

    def process(self, data: bytes) -> PipelineResult:
        for plugin in self.plugins:
            if not plugin.can_handle(data):
                continue
            variants = plugin.process(data)
            if not variants:
                logger.error(
                    "Plugin %s claimed a %d byte upload but returned no variants",
                    type(plugin).__name__,
                    len(data),
                )
                raise EmptyResultError("Upload processor returned empty upload set")
            if PresentationVariant.ORIGINAL not in variants:
                logger.warning(
                    "Plugin %s did not return the original variant, storing the upload as is",
                    type(plugin).__name__,
                )
                variants[PresentationVariant.ORIGINAL] = data
            return PipelineResult(variants=variants, plugin=plugin)
        return PipelineResult(variants=self.fallback.process(data), plugin=self.fallback)
