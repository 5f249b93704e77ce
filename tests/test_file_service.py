"""Upload, list, download, delete and open flows."""

import io

import pytest
from openpyxl import Workbook

from conftest import client_error
from EAP.core.exceptions import (
    AccessDeniedError, DatabaseError, FileValidationError, SpreadsheetParseError, StorageError
)
from EAP.services.database.repositories import AnalyticsRepository, FileRepository
from EAP.services.files.file_service import FileService
from EAP.services.storage.s3_client import S3Client


def workbook_bytes():
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Sales"
    sheet.append(["Region", "Amount"])
    sheet.append(["North", 10])
    sheet.append(["South", 20])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def service(fake_s3, rds, bucket):
    return FileService(
        storage=S3Client(bucket, client=fake_s3),
        files=FileRepository(rds),
        analytics=AnalyticsRepository(rds),
    )


def test_upload_stores_object_then_row(service, fake_s3, rds, session, bucket):
    progress = []

    record = service.upload(session, "sales.csv", b"a,b\n1,2\n", "text/csv", progress=progress.append)

    assert progress == [0, 50, 100]
    assert record.file_path.startswith("u-1/")
    assert record.file_path.endswith("-sales.csv")
    assert record.filename == record.file_path.split("/", 1)[1]
    assert record.original_name == "sales.csv"
    assert record.file_size == 8
    assert (bucket, record.file_path) in fake_s3.objects
    assert rds.updates[0][1]["file_path"] == record.file_path


def test_rejected_upload_touches_nothing(service, fake_s3, rds, session):
    progress = []
    with pytest.raises(FileValidationError):
        service.upload(session, "notes.txt", b"hello", "text/plain", progress=progress.append)

    assert progress == []
    assert fake_s3.calls == []
    assert rds.updates == []


def test_failed_storage_upload_skips_row_insert(service, fake_s3, rds, session):
    def broken_put(**kwargs):
        raise client_error("NoSuchBucket", "The specified bucket does not exist", "PutObject")
    fake_s3.put_object = broken_put

    with pytest.raises(StorageError, match="bucket does not exist"):
        service.upload(session, "sales.csv", b"a\n1\n", "text/csv")
    assert rds.updates == []


def test_download_returns_original_name(service, fake_s3, session, make_file, bucket):
    record = make_file()
    fake_s3.objects[(bucket, record.file_path)] = {"Body": b"bytes"}

    assert service.download(session, record) == ("sales.xlsx", b"bytes")


def test_delete_removes_object_before_row(service, fake_s3, rds, session, make_file, bucket):
    record = make_file()
    fake_s3.objects[(bucket, record.file_path)] = {"Body": b"bytes"}

    service.delete(session, record)

    assert fake_s3.objects == {}
    assert "DELETE FROM `excel_files`" in rds.updates[0][0]


def test_delete_keeps_row_when_storage_fails(service, fake_s3, rds, session, make_file):
    fake_s3.delete_errors = [{"Key": "k", "Message": "Access Denied"}]

    with pytest.raises(StorageError):
        service.delete(session, make_file())
    assert rds.updates == []


def test_delete_of_invisible_row_is_denied(service, rds, session, make_file):
    rds.rowcount = 0
    with pytest.raises(AccessDeniedError):
        service.delete(session, make_file())


def test_open_file_parses_and_records_summaries(service, fake_s3, rds, session, make_file, bucket):
    record = make_file()
    fake_s3.objects[(bucket, f"u-1/{record.filename}")] = {"Body": workbook_bytes()}

    sheets = service.open_file(session, record)

    assert [s.name for s in sheets] == ["Sales"]
    assert sheets[0].row_count == 2
    upsert, stats = rds.updates
    assert "INSERT INTO `analytics_data`" in upsert[0]
    assert upsert[1]["sheet_name"] == "Sales"
    assert stats[1]["sheet_count"] == 1
    assert stats[1]["row_count"] == 2


def test_open_file_survives_summary_failure(service, fake_s3, session, make_file, bucket):
    record = make_file()
    fake_s3.objects[(bucket, f"u-1/{record.filename}")] = {"Body": workbook_bytes()}

    def broken_upsert(*args, **kwargs):
        raise DatabaseError("Duplicate entry")
    service.analytics.upsert = broken_upsert

    assert len(service.open_file(session, record)) == 1


def test_open_file_marks_parse_failures(service, fake_s3, rds, session, make_file, bucket):
    record = make_file()
    fake_s3.objects[(bucket, f"u-1/{record.filename}")] = {"Body": b"PK\x03\x04garbage"}

    with pytest.raises(SpreadsheetParseError):
        service.open_file(session, record)

    query, params = rds.updates[0]
    assert "`status` = %(status)s" in query
    assert params["status"] == "error"
