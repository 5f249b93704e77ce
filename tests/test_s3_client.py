"""S3Client against an in-memory S3."""

import pytest

from EAP.core.exceptions import AccessDeniedError, ConfigError, StorageError
from EAP.services.storage.s3_client import S3Client, build_object_key


@pytest.fixture
def s3(fake_s3, bucket):
    return S3Client(bucket, client=fake_s3)


def test_build_object_key_uses_millisecond_timestamp():
    assert build_object_key("u-1", "sales.xlsx", now=1700000000.5) == "u-1/1700000000500-sales.xlsx"


def test_empty_bucket_is_a_config_error():
    with pytest.raises(ConfigError):
        S3Client("")


def test_upload_then_download(s3, fake_s3, bucket):
    uri = s3.upload_bytes("u-1/1-a.csv", b"a,b\n1,2\n", auth_uid="u-1", content_type="text/csv")

    assert uri == f"s3://{bucket}/u-1/1-a.csv"
    assert fake_s3.objects[(bucket, "u-1/1-a.csv")]["ContentType"] == "text/csv"
    assert s3.download_bytes("u-1/1-a.csv", auth_uid="u-1") == b"a,b\n1,2\n"


def test_prefix_is_prepended(fake_s3, bucket):
    s3 = S3Client(bucket, prefix="uploads/", client=fake_s3)
    s3.upload_bytes("u-1/1-a.csv", b"x", auth_uid="u-1")
    assert (bucket, "uploads/u-1/1-a.csv") in fake_s3.objects


def test_upload_outside_callers_folder_is_denied(s3, fake_s3):
    with pytest.raises(AccessDeniedError):
        s3.upload_bytes("u-2/1-a.csv", b"x", auth_uid="u-1")
    assert fake_s3.calls == []


def test_download_missing_object_raises_storage_error(s3):
    with pytest.raises(StorageError) as exc:
        s3.download_bytes("u-1/missing.csv", auth_uid="u-1")
    assert exc.value.message == "Object not found"


def test_remove_reports_per_key_errors(s3, fake_s3):
    fake_s3.delete_errors = [{"Key": "u-1/1-a.csv", "Message": "Access Denied"}]
    with pytest.raises(StorageError, match="Access Denied"):
        s3.remove(["u-1/1-a.csv"], auth_uid="u-1")


def test_remove_deletes_objects(s3, fake_s3, bucket):
    s3.upload_bytes("u-1/1-a.csv", b"x", auth_uid="u-1")
    assert s3.remove(["u-1/1-a.csv"], auth_uid="u-1") == 1
    assert fake_s3.objects == {}
    assert s3.remove([], auth_uid="u-1") == 0


def test_ensure_bucket_creates_private_bucket_once(s3, fake_s3, bucket):
    assert s3.ensure_bucket() is True
    assert ("put_public_access_block", bucket) in fake_s3.calls
    assert s3.ensure_bucket() is False
