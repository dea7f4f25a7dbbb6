"""User items engine: key codec, artifact pipeline, quota guard and catalog."""
from useritems.user_items.catalog import ItemCatalog
from useritems.user_items.key_codec import DecodedKey, KeyCodec
from useritems.user_items.models import (
    ContentCategory,
    LogicalItem,
    PresentationVariant,
    UploadResult,
    VariantLocation,
)
from useritems.user_items.pipeline import ArtifactPipeline, PipelineResult
from useritems.user_items.plugins import ArtifactPlugin, ImageScalerPlugin, PassthroughPlugin
from useritems.user_items.quota import QuotaGuard
from useritems.user_items.service import UserItemService

__all__ = [
    "ArtifactPipeline",
    "ArtifactPlugin",
    "ContentCategory",
    "DecodedKey",
    "ImageScalerPlugin",
    "ItemCatalog",
    "KeyCodec",
    "LogicalItem",
    "PassthroughPlugin",
    "PipelineResult",
    "PresentationVariant",
    "QuotaGuard",
    "UploadResult",
    "UserItemService",
    "VariantLocation",
]
