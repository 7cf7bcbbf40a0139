"""
Test configuration for the S3 bucket purger tests.

Puts the python/ script directory on sys.path and provides fake S3 clients
so nothing talks to AWS.
"""

import os
import sys
import pytest
from unittest.mock import MagicMock

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(project_root, 'python'))


@pytest.fixture(autouse=True)
def mock_aws_credentials(monkeypatch):
    """Fake credentials so a stray real client can never reach an account"""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


def _deleted_echo(Bucket, Delete):
    return {'Deleted': [dict(o) for o in Delete['Objects']]}


@pytest.fixture
def make_s3():
    """Build a MagicMock S3 client.

    buckets: bucket names returned by list_buckets
    pages: dict of bucket -> list of ListObjectVersions pages
    """
    def _make(buckets=None, pages=None):
        s3 = MagicMock()
        s3.list_buckets.return_value = {
            'Buckets': [{'Name': b} for b in (buckets or [])]
        }
        pages = pages or {}

        def get_paginator(name):
            assert name == 'list_object_versions'
            paginator = MagicMock()
            paginator.paginate.side_effect = lambda Bucket: iter(pages.get(Bucket, [{}]))
            return paginator

        s3.get_paginator.side_effect = get_paginator
        s3.delete_objects.side_effect = _deleted_echo
        s3.delete_bucket.return_value = {}
        return s3

    return _make
