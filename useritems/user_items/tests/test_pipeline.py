import pytest

from useritems.user_items.errors import EmptyResultError
from useritems.user_items.models import ContentCategory, PresentationVariant
from useritems.user_items.pipeline import ArtifactPipeline


class _StubPlugin:
    def __init__(self, claims, variants=None, category=ContentCategory.IMAGE):
        self.claims = claims
        self.variants = variants
        self.category = category
        self.processed = 0

    def can_handle(self, data):
        return self.claims

    def content_category(self):
        return self.category

    def process(self, data):
        self.processed += 1
        return dict(self.variants) if self.variants is not None else {PresentationVariant.ORIGINAL: data}

    def preferred_extension(self):
        return "jpg"


def test_first_claiming_plugin_wins():
    declines = _StubPlugin(claims=False)
    first = _StubPlugin(claims=True)
    second = _StubPlugin(claims=True)
    result = ArtifactPipeline([declines, first, second]).process(b"data")
    assert result.plugin is first
    assert result.category is ContentCategory.IMAGE
    assert result.preferred_extension == "jpg"
    assert declines.processed == 0
    assert second.processed == 0


def test_unclaimed_bytes_fall_back_to_passthrough():
    result = ArtifactPipeline([_StubPlugin(claims=False)]).process(b"data")
    assert result.category is ContentCategory.UNKNOWN
    assert result.variants == {PresentationVariant.ORIGINAL: b"data"}
    assert result.preferred_extension == ""


def test_empty_variants_is_internal_error():
    with pytest.raises(EmptyResultError, match="empty upload set"):
        ArtifactPipeline([_StubPlugin(claims=True, variants={})]).process(b"data")


def test_missing_original_is_filled_from_upload(caplog):
    plugin = _StubPlugin(claims=True, variants={PresentationVariant.PREVIEW: b"p"})
    result = ArtifactPipeline([plugin]).process(b"data")
    assert result.variants == {PresentationVariant.PREVIEW: b"p", PresentationVariant.ORIGINAL: b"data"}
    assert "did not return the original" in caplog.text
