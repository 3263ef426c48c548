"""Tests for the thumbnail pipeline."""

import json

from afterglow_publish.gallery import GalleryIndex
from afterglow_publish.thumbnail_cache import (
    ThumbnailPipeline,
    cache_root_for,
    cover_dir_for,
    thumb_filename_for,
)
from afterglow_publish.thumbnail_generator import ThumbnailGenerator


class TestHelpers:
    """Tests for naming helpers."""

    def test_thumb_filename(self):
        """Test thumbnails keep the stem and switch to .webp."""
        assert thumb_filename_for('01.jpg') == '01.webp'
        assert thumb_filename_for('nested/IMG_0001.JPEG') == 'IMG_0001.webp'

    def test_cover_dir(self):
        """Test covers go under their parent directory, or the slug at top level."""
        assert cover_dir_for('sunset/01.jpg', 'sunset') == 'sunset'
        assert cover_dir_for('covers/sunset.jpg', 'sunset') == 'covers'
        assert cover_dir_for('cover.jpg', 'sunset') == 'sunset'


class TestBuildSpecs:
    """Tests for ThumbnailPipeline.build_specs."""

    def test_cover_shared_with_photo_is_one_spec(self, workspace):
        """Test an image used as cover and photo thumbnail is derived once."""
        pipeline = ThumbnailPipeline()

        specs = pipeline.build_specs(workspace, GalleryIndex.load(workspace))

        assert [s.thumb_filename for s in specs] == ['01.webp', '02.webp']
        assert [s.remote_key for s in specs] == [
            'galleries/sunset/.thumbs/01.webp',
            'galleries/sunset/.thumbs/02.webp',
        ]

    def test_dest_paths_in_cache(self, workspace):
        """Test thumbnails are cached under .data/thumbnails/{slug}."""
        specs = ThumbnailPipeline().build_specs(workspace, GalleryIndex.load(workspace))

        cache_root = cache_root_for(workspace.resolve())
        assert specs[0].dest_path == cache_root / 'sunset' / '01.webp'
        assert specs[0].relative_url == '.thumbs/01.webp'
        assert specs[0].slug == 'sunset'

    def test_remote_root_prefix(self, workspace):
        """Test remote keys carry the remote root."""
        specs = ThumbnailPipeline().build_specs(workspace, GalleryIndex.load(workspace), 'photos/')

        assert specs[0].remote_key == 'photos/galleries/sunset/.thumbs/01.webp'

    def test_cover_in_other_directory(self, workspace, make_image):
        """Test a cover outside the gallery directory is keyed by its own directory."""
        make_image(workspace / 'covers' / 'sunset.jpg')
        (workspace / 'galleries.json').write_text(json.dumps([
            {'name': 'Sunset', 'slug': 'sunset', 'cover': 'covers/sunset.jpg'},
        ]), encoding='utf-8')

        specs = ThumbnailPipeline().build_specs(workspace, GalleryIndex.load(workspace))

        assert specs[0].remote_key == 'galleries/covers/.thumbs/sunset.webp'
        assert len(specs) == 3

    def test_missing_sources_skipped(self, workspace):
        """Test images that do not exist produce no spec."""
        (workspace / 'sunset' / '02.jpg').unlink()

        specs = ThumbnailPipeline().build_specs(workspace, GalleryIndex.load(workspace))

        assert [s.thumb_filename for s in specs] == ['01.webp']

    def test_unsafe_slugs_skipped(self, workspace, escaping_slugs):
        """Test galleries with escaping slugs produce no spec."""
        specs = ThumbnailPipeline().build_specs(workspace, GalleryIndex.load(workspace))

        assert [s.slug for s in specs] == ['sunset', 'sunset']


class TestEnsureAll:
    """Tests for ThumbnailPipeline.ensure_all."""

    def test_generates_then_skips(self, workspace):
        """Test a second run finds everything fresh."""
        pipeline = ThumbnailPipeline()
        specs = pipeline.build_specs(workspace, GalleryIndex.load(workspace))

        first = pipeline.ensure_all(specs)
        second = pipeline.ensure_all(specs)

        assert first.generated == 2
        assert first.skipped == 0
        assert second.generated == 0
        assert second.skipped == 2
        assert all(s.dest_path.exists() for s in specs)

    def test_progress_called_for_every_spec(self, workspace):
        """Test the progress callback sees each spec once, in order."""
        pipeline = ThumbnailPipeline()
        specs = pipeline.build_specs(workspace, GalleryIndex.load(workspace))
        calls = []

        pipeline.ensure_all(specs, lambda current, total, spec: calls.append((current, total, spec.thumb_filename)))

        assert calls == [(1, 2, '01.webp'), (2, 2, '02.webp')]

    def test_failures_collected(self, workspace):
        """Test one broken image does not stop the batch."""
        (workspace / 'sunset' / '02.jpg').write_bytes(b'broken')
        pipeline = ThumbnailPipeline()
        specs = pipeline.build_specs(workspace, GalleryIndex.load(workspace))

        results = pipeline.ensure_all(specs)

        assert results.generated == 1
        assert results.failed == 1
        assert results.skipped == 0
        assert results.errors[0][0].name == '02.jpg'

    def test_custom_generator_size(self, workspace):
        """Test the pipeline uses the generator it is given."""
        from PIL import Image

        pipeline = ThumbnailPipeline(ThumbnailGenerator(size=100))
        specs = pipeline.build_specs(workspace, GalleryIndex.load(workspace))
        pipeline.ensure_all(specs)

        with Image.open(specs[0].dest_path) as img:
            assert max(img.size) == 100


class TestCleanupStale:
    """Tests for ThumbnailPipeline.cleanup_stale."""

    def test_removes_unreferenced_thumbnails(self, workspace):
        """Test stale thumbnails and their empty directories are removed."""
        pipeline = ThumbnailPipeline()
        specs = pipeline.build_specs(workspace, GalleryIndex.load(workspace))
        pipeline.ensure_all(specs)

        cache_root = cache_root_for(workspace)
        stale = cache_root / 'deleted-gallery' / 'old.webp'
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b'old')

        removed = pipeline.cleanup_stale(cache_root, specs)

        assert removed == 1
        assert not stale.exists()
        assert not stale.parent.exists()
        assert all(s.dest_path.exists() for s in specs)

    def test_missing_cache(self, tmp_path):
        """Test a workspace without a cache."""
        assert ThumbnailPipeline().cleanup_stale(tmp_path / 'none', []) == 0

    def test_non_webp_files_untouched(self, workspace):
        """Test only .webp files are considered for removal."""
        cache_root = cache_root_for(workspace)
        other = cache_root / 'sunset' / 'notes.txt'
        other.parent.mkdir(parents=True)
        other.write_text('keep', encoding='utf-8')

        removed = ThumbnailPipeline().cleanup_stale(cache_root, [])

        assert removed == 0
        assert other.exists()
