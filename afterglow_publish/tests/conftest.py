"""
Pytest fixtures for afterglow_publish tests.
"""

import hashlib
import json
import threading

import pytest


@pytest.fixture
def config():
    """Fixture providing a complete publish configuration."""
    from afterglow_publish.config import PublishConfig

    return PublishConfig(
        bucket='test-bucket',
        region='ap-southeast-2',
        prefix='',
        distribution_id='E1ABC2DEF3GH',
        access_key='test-access-key',
        secret_key='test-secret-key',
    )


@pytest.fixture
def make_image():
    """Fixture providing a helper that writes a Pillow-generated image to disk."""
    from PIL import Image

    def _make(path, size=(100, 100), color='red', mode='RGB', fmt='JPEG'):
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.new(mode, size, color=color)
        img.save(path, format=fmt)
        return path

    return _make


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding='utf-8')
    return path


@pytest.fixture
def workspace(tmp_path, make_image):
    """
    Fixture providing a workspace with one gallery of two photos.

    The cover is also the first photo's thumbnail, so only two thumbnails
    are derived.
    """
    root = tmp_path / 'workspace'
    write_json(root / 'galleries.json', {
        'schemaVersion': 1,
        'galleries': [
            {
                'name': 'Sunset',
                'slug': 'sunset',
                'date': '2024-05-01',
                'cover': 'sunset/01.jpg',
                'tags': ['sky'],
            }
        ],
    })
    write_json(root / 'sunset' / 'gallery-details.json', {
        'name': 'Sunset',
        'slug': 'sunset',
        'date': '2024-05-01',
        'description': 'Evening light over the bay',
        'photos': [
            {'thumbnail': '01.jpg', 'full': '01.jpg', 'alt': 'First light', 'tags': ['orange']},
            {'thumbnail': '02.jpg', 'full': '02-large.jpg', 'alt': 'Second'},
        ],
    })
    make_image(root / 'sunset' / '01.jpg', size=(1200, 900), color='orange')
    make_image(root / 'sunset' / '02.jpg', size=(640, 480), color='purple')
    make_image(root / 'sunset' / '02-large.jpg', size=(1600, 1200), color='purple')
    return root


@pytest.fixture
def escaping_slugs(workspace, make_image):
    """
    Fixture adding galleries whose slugs leave the workspace ('../outside')
    or name the workspace itself ('.') next to the regular 'sunset' gallery.

    Returns the directory the '../outside' slug points at.
    """
    outside = workspace.parent / 'outside'
    details = {
        'name': 'Outside',
        'slug': 'outside',
        'photos': [{'thumbnail': 'a.jpg', 'full': 'a.jpg', 'alt': 'Elsewhere'}],
    }
    write_json(outside / 'gallery-details.json', details)
    make_image(outside / 'a.jpg')
    write_json(workspace / 'gallery-details.json', dict(details, slug='.'))

    index_file = workspace / 'galleries.json'
    index = json.loads(index_file.read_text(encoding='utf-8'))
    index['galleries'] += [
        {'name': 'Outside', 'slug': '../outside', 'date': '2024-06-01'},
        {'name': 'Root', 'slug': '.', 'date': '2024-06-02'},
    ]
    write_json(index_file, index)
    return outside


class FakeS3:
    """
    In-memory stand-in for S3Client. Objects are stored with MD5 ETags so a
    second preview sees everything as unchanged.
    """

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.bodies = {}
        self.content_types = {}
        self.uploaded = []
        self.deleted = []
        self.listed = []
        self.fail_on = set()
        self.on_upload = None
        self._lock = threading.Lock()

    def list_fingerprints(self, prefix):
        self.listed.append(prefix)
        return {k: v for k, v in self.objects.items() if k.startswith(prefix)}

    def upload_file(self, key, path, content_type):
        from afterglow_publish.errors import RemoteError

        if key in self.fail_on:
            raise RemoteError(f"Upload failed for {key}: AccessDenied: Access Denied", key=key)
        with open(path, 'rb') as f:
            body = f.read()
        with self._lock:
            self.objects[key] = hashlib.md5(body).hexdigest()
            self.bodies[key] = body
            self.content_types[key] = content_type
            self.uploaded.append(key)
        if self.on_upload:
            self.on_upload(key)

    def delete_object(self, key):
        from afterglow_publish.errors import RemoteError

        if key in self.fail_on:
            raise RemoteError(f"Delete failed for {key}: AccessDenied: Access Denied", key=key)
        with self._lock:
            self.objects.pop(key, None)
            self.deleted.append(key)


class FakeCdn:
    """In-memory stand-in for CdnClient."""

    def __init__(self, enabled=True, delay=0.0, error=None):
        self.enabled = enabled
        self.delay = delay
        self.error = error
        self.invalidated = []

    def invalidate(self, prefix):
        import time

        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        self.invalidated.append(prefix)
        return 'I2J0I21PCUYOIK'


@pytest.fixture
def fake_s3():
    """Fixture providing an empty in-memory bucket."""
    return FakeS3()


@pytest.fixture
def fake_cdn():
    """Fixture providing an in-memory CDN."""
    return FakeCdn()


@pytest.fixture
def mock_boto3_client(mocker):
    """Fixture providing a mocked boto3 client."""
    mock_client = mocker.MagicMock()
    mocker.patch('boto3.client', return_value=mock_client)
    return mock_client


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')


@pytest.fixture
def make_fake_s3():
    """Fixture providing the FakeS3 class, for buckets with initial objects."""
    return FakeS3


@pytest.fixture
def make_fake_cdn():
    """Fixture providing the FakeCdn class, for slow or failing CDNs."""
    return FakeCdn
