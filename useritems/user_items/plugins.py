"""Artifact plugins: decide whether they own an upload and derive its variants.

An upload may have:
  - a preview, a transformation we would rather show in-line than the content;
  - a preferred rendition, returned by default unless the original is asked for
    (e.g. a large image scaled down);
  - the original bytes, which are always kept.

Plugins record per-upload side outputs (the preferred extension), so build a
fresh plugin list for every upload rather than sharing instances.
"""
from __future__ import annotations

import io
import logging
import math
from typing import Dict, Optional, Protocol, Tuple

from PIL import Image, UnidentifiedImageError

from useritems.config.runtime_config import ItemStoreSettings
from useritems.user_items.models import ContentCategory, PresentationVariant

logger = logging.getLogger(__name__)

VariantMap = Dict[PresentationVariant, bytes]

_FORMAT_EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp"}
_LOSSY_FORMATS = {"JPEG", "WEBP"}


class ArtifactPlugin(Protocol):
    def can_handle(self, data: bytes) -> bool:
        """Cheap, side-effect free check whether this plugin owns the bytes."""
        ...

    def content_category(self) -> ContentCategory:
        ...

    def process(self, data: bytes) -> VariantMap:
        """Derived variants keyed by presentation; always includes the original."""
        ...

    def preferred_extension(self) -> str:
        """Extension for the preferred variant, or "" when it keeps the original's."""
        ...


class PassthroughPlugin:
    """Fallback when no plugin claims an upload: original only, category unknown."""

    def can_handle(self, data: bytes) -> bool:
        return True

    def content_category(self) -> ContentCategory:
        return ContentCategory.UNKNOWN

    def process(self, data: bytes) -> VariantMap:
        return {PresentationVariant.ORIGINAL: data}

    def preferred_extension(self) -> str:
        return ""


def scaled_height(source_width: int, source_height: int, target_width: int) -> int:
    """Height keeping the aspect ratio at target_width, rounded half up (min 1)."""
    ratio = float(target_width) / float(source_width)
    return max(1, int(math.floor(ratio * source_height + 0.5)))


def derived_size(
    source_width: int, source_height: int, target_width: int, max_height: int
) -> Tuple[int, int]:
    """Size of a rendition at target_width, shrunk to max_height when it would be taller.

    The width is then recomputed from the clamped height so the aspect ratio holds.
    """
    target_height = scaled_height(source_width, source_height, target_width)
    if target_height <= max_height:
        return target_width, target_height
    return scaled_height(source_height, source_width, max_height), max_height


class ImageScalerPlugin:
    """Claims any raster Pillow can identify; emits a preview and, for wide images, a preferred copy."""

    def __init__(
        self,
        preview_width_px: int = 200,
        preferred_max_width_px: int = 1024,
        max_derived_height_px: int = 4096,
        encode_quality: float = 0.7,
        encode_format: str = "JPEG",
    ) -> None:
        encode_format = encode_format.upper()
        if encode_format not in _FORMAT_EXTENSIONS:
            raise ValueError(f"Unsupported encode format: {encode_format}")
        if preview_width_px <= 0 or preferred_max_width_px <= 0 or max_derived_height_px <= 0:
            raise ValueError("target sizes must be positive")
        self.preview_width_px = preview_width_px
        self.preferred_max_width_px = preferred_max_width_px
        self.max_derived_height_px = max_derived_height_px
        self.encode_quality = encode_quality
        self.encode_format = encode_format
        self._preferred_extension = ""

    @classmethod
    def from_settings(cls, settings: ItemStoreSettings) -> "ImageScalerPlugin":
        return cls(
            preview_width_px=settings.preview_width_px,
            preferred_max_width_px=settings.preferred_max_width_px,
            max_derived_height_px=settings.max_derived_height_px,
            encode_quality=settings.image_encode_quality,
            encode_format=settings.image_encode_format,
        )

    def can_handle(self, data: bytes) -> bool:
        # Image.open only parses the header; pixels are decoded on load().
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.format is not None
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            logger.debug("Image plugin declined buffer: %s", exc)
            return False

    def content_category(self) -> ContentCategory:
        return ContentCategory.IMAGE

    def preferred_extension(self) -> str:
        return self._preferred_extension

    def process(self, data: bytes) -> VariantMap:
        variants: VariantMap = {PresentationVariant.ORIGINAL: data}
        self._preferred_extension = ""
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                source_format = (img.format or "").upper()
                source_width = img.width
                variants[PresentationVariant.PREVIEW] = self._shrink_to_width(img, self.preview_width_px)
                if source_width > self.preferred_max_width_px:
                    variants[PresentationVariant.PREFERRED] = self._shrink_to_width(
                        img, self.preferred_max_width_px
                    )
                    if source_format != self.encode_format:
                        self._preferred_extension = _FORMAT_EXTENSIONS[self.encode_format]
        except Exception:
            # Derived variants are best effort; the original is still stored.
            logger.exception(
                "Image plugin could not build derived variants; keeping %s",
                sorted(v.value for v in variants),
            )
        return variants

    def _shrink_to_width(self, img: Image.Image, target_width: int) -> bytes:
        target_width, target_height = derived_size(
            img.width, img.height, target_width, self.max_derived_height_px
        )
        frame = self._convert_for_encode(img)
        resized = frame.resize((target_width, target_height), Image.Resampling.LANCZOS)
        out_io = io.BytesIO()
        save_kwargs = {}
        if self.encode_format in _LOSSY_FORMATS:
            save_kwargs["quality"] = int(round(self.encode_quality * 100))
        resized.save(out_io, format=self.encode_format, **save_kwargs)
        logger.debug(
            "Scaled %dx%d to %dx%d (%s)",
            img.width,
            img.height,
            target_width,
            target_height,
            self.encode_format,
        )
        return out_io.getvalue()

    def _convert_for_encode(self, img: Image.Image) -> Image.Image:
        if self.encode_format == "JPEG":
            return img if img.mode in ("RGB", "L") else img.convert("RGB")
        return img if img.mode in ("RGB", "RGBA", "L", "LA") else img.convert("RGBA")


def default_plugins(settings: Optional[ItemStoreSettings] = None) -> list:
    """Fresh plugin list in priority order."""
    settings = settings or ItemStoreSettings()
    return [ImageScalerPlugin.from_settings(settings)]
