"""Tests for the diff/plan builder."""

import hashlib
from unittest.mock import MagicMock

import pytest

from afterglow_publish.planner import PlanBuilder, PublishPlan, classify, is_managed_key, is_unchanged


@pytest.fixture
def artifacts(tmp_path):
    """Fixture providing three local artifacts keyed by remote key."""
    files = {}
    for key, content in [
        ('galleries/galleries.json', b'{"galleries": []}'),
        ('galleries/sunset/01.jpg', b'jpeg-one'),
        ('index.html', b'<html></html>'),
    ]:
        path = tmp_path / key.replace('/', '_')
        path.write_bytes(content)
        files[key] = path
    return files


def md5(path):
    return hashlib.md5(path.read_bytes()).hexdigest()


class TestIsUnchanged:
    """Tests for is_unchanged."""

    def test_matching_etag(self):
        """Test equal digests are unchanged."""
        assert is_unchanged('abc', 'abc') is True

    def test_mismatch(self):
        """Test differing digests need an upload."""
        assert is_unchanged('abc', 'def') is False

    def test_missing(self):
        """Test a missing remote object needs an upload."""
        assert is_unchanged('abc', None) is False
        assert is_unchanged('abc', '') is False

    def test_multipart_always_uploads(self):
        """Test a multipart ETag never counts as unchanged."""
        assert is_unchanged('abc-2', 'abc-2') is False


class TestIsManagedKey:
    """Tests for is_managed_key."""

    @pytest.mark.parametrize('key,expected', [
        ('galleries/sunset/01.jpg', True),
        ('afterglow/js/app.js', True),
        ('index.html', True),
        ('favicon.ico', True),
        ('favicon.png', True),
        ('backups/2023.zip', False),
        ('robots.txt', False),
        ('galleries', False),
    ])
    def test_without_root(self, key, expected):
        """Test managed areas at the bucket root."""
        assert is_managed_key(key, '') is expected

    def test_with_root(self):
        """Test managed areas move under the remote root."""
        assert is_managed_key('site/galleries/a.jpg', 'site/') is True
        assert is_managed_key('site/index.html', 'site/') is True
        assert is_managed_key('galleries/a.jpg', 'site/') is False
        assert is_managed_key('index.html', 'site/') is False


class TestClassify:
    """Tests for classify."""

    def test_empty_remote(self, artifacts):
        """Test everything is uploaded to an empty bucket."""
        plan = classify(artifacts, {})

        assert [f.remote_key for f in plan.to_upload] == sorted(artifacts)
        assert plan.to_delete == ()
        assert plan.unchanged_count == 0
        assert plan.total_files == 3

    def test_unchanged_and_changed(self, artifacts):
        """Test matching ETags are skipped and mismatches uploaded."""
        remote = {
            'galleries/galleries.json': md5(artifacts['galleries/galleries.json']),
            'galleries/sunset/01.jpg': 'stale0000',
            'index.html': md5(artifacts['index.html']),
        }

        plan = classify(artifacts, remote)

        assert [f.remote_key for f in plan.to_upload] == ['galleries/sunset/01.jpg']
        assert plan.unchanged_count == 2
        assert plan.total_files == 3

    def test_multipart_etag_reuploaded(self, artifacts):
        """Test a multipart object is uploaded even when its hash part matches."""
        path = artifacts['galleries/sunset/01.jpg']
        remote = {'galleries/sunset/01.jpg': f"{md5(path)}-3"}

        plan = classify(artifacts, remote)

        assert 'galleries/sunset/01.jpg' in [f.remote_key for f in plan.to_upload]

    def test_deletes_only_managed_orphans(self, artifacts):
        """Test orphans are deleted only inside managed areas."""
        remote = {
            'galleries/old/gone.jpg': 'x',
            'afterglow/css/old.css': 'y',
            'backups/site.zip': 'z',
            'robots.txt': 'w',
        }

        plan = classify(artifacts, remote)

        assert plan.to_delete == ('afterglow/css/old.css', 'galleries/old/gone.jpg')
        assert plan.total_files == 5

    def test_plan_ids_unique(self, artifacts):
        """Test each plan gets a fresh id."""
        assert classify(artifacts, {}).plan_id != classify(artifacts, {}).plan_id

    def test_explicit_plan_id(self, artifacts):
        """Test a given plan id is used."""
        assert classify(artifacts, {}, plan_id='p-1').plan_id == 'p-1'


class TestPublishPlan:
    """Tests for PublishPlan."""

    def test_to_dict(self, artifacts):
        """Test serialization uses the wire field names."""
        plan = classify(artifacts, {'galleries/x.jpg': 'e'}, plan_id='p-1')

        data = plan.to_dict()

        assert data['planId'] == 'p-1'
        assert data['toDelete'] == ['galleries/x.jpg']
        assert data['unchanged'] == 0
        assert data['totalFiles'] == 4
        assert data['toUpload'][0]['s3Key'] == 'galleries/galleries.json'

    def test_upload_bytes(self, artifacts):
        """Test upload size is summed over uploads."""
        plan = classify(artifacts, {})

        assert plan.upload_bytes == sum(p.stat().st_size for p in artifacts.values())

    def test_is_empty(self):
        """Test a plan with nothing to do."""
        assert PublishPlan(plan_id='p', unchanged_count=3, total_files=3).is_empty is True


class TestPlanBuilder:
    """Tests for PlanBuilder."""

    def test_build_lists_remote_root(self, artifacts, logger):
        """Test the remote inventory is listed under the remote root."""
        s3 = MagicMock()
        s3.list_fingerprints.return_value = {'site/galleries/old.jpg': 'e'}
        keyed = {f"site/{k}": v for k, v in artifacts.items()}

        plan = PlanBuilder(s3, logger).build(keyed, 'site/')

        s3.list_fingerprints.assert_called_once_with('site/')
        assert plan.to_delete == ('site/galleries/old.jpg',)
        assert len(plan.to_upload) == 3
