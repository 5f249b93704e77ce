"""
Shared fixtures: in-memory stand-ins for RDS, S3 and Cognito.

File logging is switched off before any EAP module is imported so test runs
do not write to logs/.
"""

import io
import os
from datetime import datetime

os.environ.setdefault("EAP_DISABLE_FILE_LOGS", "1")

import pytest
from botocore.exceptions import ClientError

from EAP.core.settings import settings
from EAP.services.auth.cognito_client import AuthSession
from EAP.services.database.repositories import FileRecord


class FakeRDS:
    """Records statements; returns queued results for queries."""

    def __init__(self):
        self.queries = []
        self.updates = []
        self.statements = []
        self.query_results = []
        self.rowcount = 1
        self.triggers = set()

    def execute_query(self, query, params=None):
        self.queries.append((query, params))
        return self.query_results.pop(0) if self.query_results else []

    def execute_update(self, query, params=None):
        self.updates.append((query, params))
        return self.rowcount

    def execute_statements(self, statements):
        self.statements.extend(statements)

    def trigger_exists(self, trigger_name):
        return trigger_name in self.triggers


def client_error(code, message, operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeS3:
    """Dict-backed subset of the boto3 S3 client."""

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.buckets = set()
        self.delete_errors = []

    def put_object(self, Bucket, Key, Body, **kwargs):
        self.calls.append(("put_object", Key))
        self.objects[(Bucket, Key)] = {"Body": Body, **kwargs}
        return {}

    def get_object(self, Bucket, Key):
        self.calls.append(("get_object", Key))
        if (Bucket, Key) not in self.objects:
            raise client_error("NoSuchKey", "Object not found", "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)]["Body"])}

    def delete_objects(self, Bucket, Delete):
        self.calls.append(("delete_objects", [o["Key"] for o in Delete["Objects"]]))
        if self.delete_errors:
            return {"Errors": self.delete_errors}
        for obj in Delete["Objects"]:
            self.objects.pop((Bucket, obj["Key"]), None)
        return {}

    def head_bucket(self, Bucket):
        if Bucket not in self.buckets:
            raise client_error("404", "Not Found", "HeadBucket")
        return {}

    def create_bucket(self, Bucket, **kwargs):
        self.calls.append(("create_bucket", Bucket))
        self.buckets.add(Bucket)
        return {}

    def put_public_access_block(self, Bucket, PublicAccessBlockConfiguration):
        self.calls.append(("put_public_access_block", Bucket))
        return {}


@pytest.fixture
def rds():
    return FakeRDS()


@pytest.fixture
def fake_s3():
    return FakeS3()


@pytest.fixture
def bucket():
    return settings.s3_bucket_files


@pytest.fixture
def session():
    return AuthSession(
        user_id="u-1",
        email="ann@example.com",
        display_name="Ann",
        access_token="access-1",
    )


@pytest.fixture
def make_file():
    def _make(**overrides):
        values = {
            "id": "f-1",
            "user_id": "u-1",
            "filename": "1700000000000-sales.xlsx",
            "original_name": "sales.xlsx",
            "file_size": 2048,
            "file_path": "u-1/1700000000000-sales.xlsx",
            "upload_date": datetime(2024, 5, 1, 12, 0, 0),
            "status": "uploaded",
        }
        values.update(overrides)
        return FileRecord(**values)
    return _make
