"""Tests for the export handle store."""

import pytest


class TestBlobStore:
    """Test storing and releasing binaries."""

    def test_put_get(self, blob_store):
        """Test that stored data is returned by handle."""
        handle = blob_store.put(b"GIF89a...", "image/gif")
        assert handle.startswith("blob:")
        assert blob_store.get(handle) == b"GIF89a..."
        assert blob_store.mime_type(handle) == "image/gif"
        assert handle in blob_store
        assert blob_store.total_bytes == 9

    def test_unique_handles(self, blob_store):
        """Test that equal data gets distinct handles."""
        assert blob_store.put(b"x", "image/gif") != blob_store.put(b"x", "image/gif")
        assert len(blob_store) == 2

    def test_release(self, blob_store):
        """Test that released data is gone and releasing is idempotent."""
        handle = blob_store.put(b"abc", "image/gif")
        assert blob_store.release(handle)
        assert not blob_store.release(handle)
        assert handle not in blob_store
        assert blob_store.total_bytes == 0
        with pytest.raises(KeyError):
            blob_store.get(handle)

    def test_unknown_handle(self, blob_store):
        """Test access with a handle that never existed."""
        with pytest.raises(KeyError):
            blob_store.get("blob:unknown")

    def test_clear(self, blob_store):
        """Test releasing everything."""
        blob_store.put(b"a", "image/gif")
        blob_store.put(b"b", "image/gif")
        blob_store.clear()
        assert len(blob_store) == 0
        assert blob_store.total_bytes == 0
