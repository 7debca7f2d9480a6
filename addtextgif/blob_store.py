"""In-memory store for exported binaries.

Exports hand out a handle instead of the bytes, the way a browser hands out
an object URL for a Blob. Releasing a handle frees its data; the editor
releases the previous export whenever a new one completes so at most one
export is held at a time.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class BlobEntry:
    """A stored binary."""

    data: bytes
    mime_type: str
    created_at: float = field(default_factory=time.time)
    size: int = 0

    def __post_init__(self):
        self.size = len(self.data)


class BlobStore:
    """Thread-safe handle to bytes mapping."""

    def __init__(self) -> None:
        self._entries: dict[str, BlobEntry] = {}
        self._lock = threading.Lock()
        self._total_bytes = 0

    def put(self, data: bytes, mime_type: str) -> str:
        """
        Stores a binary.

        :param data: The bytes
        :param mime_type: Their MIME type
        :return: The handle
        """
        handle = f"blob:{uuid.uuid4()}"
        entry = BlobEntry(data=data, mime_type=mime_type)
        with self._lock:
            self._entries[handle] = entry
            self._total_bytes += entry.size
        logger.debug(f"Stored {entry.size} bytes as {handle}")
        return handle

    def get(self, handle: str) -> bytes:
        """
        Returns the bytes of a handle.

        :raises KeyError: If the handle is unknown or was released
        """
        with self._lock:
            return self._entries[handle].data

    def mime_type(self, handle: str) -> str:
        """Returns the MIME type of a handle."""
        with self._lock:
            return self._entries[handle].mime_type

    def release(self, handle: str) -> bool:
        """
        Frees the data of a handle. Releasing twice is harmless.

        :return: True if the handle was still valid
        """
        with self._lock:
            entry = self._entries.pop(handle, None)
            if entry is None:
                return False
            self._total_bytes -= entry.size
        logger.debug(f"Released {handle}")
        return True

    def clear(self) -> None:
        """Releases all handles."""
        with self._lock:
            self._entries.clear()
            self._total_bytes = 0

    @property
    def total_bytes(self) -> int:
        """Bytes currently held."""
        with self._lock:
            return self._total_bytes

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


blob_store = BlobStore()
"Process-wide default store"
