"""Unit tests for S3 variant storage."""

from unittest.mock import patch

import pytest

from globetrotter_imaging.core.exceptions import StorageError
from globetrotter_imaging.core.models import ProcessedVariant
from globetrotter_imaging.core.storage import S3VariantStorage, variant_key
from globetrotter_imaging.testing.fakes import FakeS3Client


@pytest.fixture
def fake_s3():
    client = FakeS3Client()
    client.create_bucket("trips")
    return client


@pytest.fixture
def no_sleep():
    with patch("time.sleep") as mocked_sleep:
        yield mocked_sleep


def _variants():
    return {
        "thumbnail": ProcessedVariant(name="thumbnail", data=b"thumb", format="jpeg", width=3, height=3),
        "medium": ProcessedVariant(name="medium", data=b"medium-bytes", format="webp", width=8, height=8),
        "large": ProcessedVariant(name="large", data=b"large-bytes!", format="png", width=12, height=12),
    }


class TestVariantKey:
    """Tests for variant_key."""

    def test_with_prefix(self):
        assert variant_key("globe-trotter", "a1", "thumbnail", "jpeg") == "globe-trotter/a1/thumbnail.jpg"

    def test_prefix_slashes_are_trimmed(self):
        assert variant_key("/trips/", "a1", "large", "webp") == "trips/a1/large.webp"

    def test_without_prefix(self):
        assert variant_key("", "a1", "medium", "tiff") == "a1/medium.tif"


class TestS3VariantStorage:
    """Tests for S3VariantStorage."""

    def test_store_variants(self, fake_s3):
        storage = S3VariantStorage(fake_s3, "trips", prefix="globe-trotter")

        stored = storage.store_variants("asset-1", _variants())

        assert set(stored) == {"thumbnail", "medium", "large"}
        thumb = stored["thumbnail"]
        assert thumb.key == "globe-trotter/asset-1/thumbnail.jpg"
        assert thumb.url == "https://trips.s3.amazonaws.com/globe-trotter/asset-1/thumbnail.jpg"
        assert thumb.size == 5
        assert thumb.content_type == "image/jpeg"
        assert stored["medium"].content_type == "image/webp"

        bucket = fake_s3.get_bucket("trips")
        assert bucket.get_object("globe-trotter/asset-1/large.png").body == b"large-bytes!"
        assert bucket.get_object("globe-trotter/asset-1/large.png").content_type == "image/png"

    def test_public_url_base(self, fake_s3):
        storage = S3VariantStorage(fake_s3, "trips", public_url_base="https://cdn.example.com/")

        stored = storage.store_variants("a1", {"thumbnail": _variants()["thumbnail"]})

        assert stored["thumbnail"].url == "https://cdn.example.com/a1/thumbnail.jpg"

    def test_failure_removes_uploaded_variants(self, fake_s3, no_sleep):
        fake_s3.set_failure_mode("AccessDenied", fail_after=1)
        storage = S3VariantStorage(fake_s3, "trips")

        with pytest.raises(StorageError):
            storage.store_variants("a1", _variants())

        assert fake_s3.deleted_keys == ["a1/thumbnail.jpg"]
        assert fake_s3.get_bucket("trips").objects == {}
        no_sleep.assert_not_called()

    def test_throttling_is_retried(self, fake_s3, no_sleep):
        fake_s3.set_failure_mode("SlowDown")
        storage = S3VariantStorage(fake_s3, "trips")

        with pytest.raises(StorageError):
            storage.store_variants("a1", {"thumbnail": _variants()["thumbnail"]})

        assert fake_s3.operation_count == 3
        assert no_sleep.call_count == 2

    def test_missing_bucket(self, no_sleep):
        storage = S3VariantStorage(FakeS3Client(), "nope")

        with pytest.raises(StorageError, match="NoSuchBucket"):
            storage.store_variants("a1", _variants())

    def test_delete_variants(self, fake_s3):
        storage = S3VariantStorage(fake_s3, "trips")
        stored = storage.store_variants("a1", _variants())

        storage.delete_variants([variant.key for variant in stored.values()])

        assert fake_s3.get_bucket("trips").objects == {}
        assert len(fake_s3.deleted_keys) == 3
