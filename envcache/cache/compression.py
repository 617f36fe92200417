"""
Payload compression for envcache

Encoded entries are optionally zlib-compressed before encryption. A one-byte
marker records which form follows, so a cache reads both compressed and
uncompressed payloads whatever its current setting.
"""

import zlib

MARKER_RAW = b'\x00'
MARKER_ZLIB = b'\x01'


class PayloadCompressor:
    """Marker-prefixed zlib compression with a size threshold."""

    def __init__(self, enabled: bool = False, level: int = 6, threshold: int = 1024):
        self.enabled = enabled
        self.level = level
        self.threshold = threshold
        self._stats = {"compressions": 0, "decompressions": 0}

    def compress(self, data: bytes) -> bytes:
        """Compress data if enabled and above threshold."""
        if self.enabled and len(data) > self.threshold:
            compressed = zlib.compress(data, level=self.level)
            self._stats["compressions"] += 1
            return MARKER_ZLIB + compressed
        return MARKER_RAW + data

    def decompress(self, data: bytes) -> bytes:
        """
        Strip the marker and decompress if needed.

        Raises:
            ValueError: Unknown marker or corrupt zlib stream
        """
        if not data:
            raise ValueError("Empty payload")

        marker, payload = data[0:1], data[1:]
        if marker == MARKER_RAW:
            return payload
        if marker == MARKER_ZLIB:
            try:
                result = zlib.decompress(payload)
            except zlib.error as e:
                raise ValueError(f"Corrupt compressed payload: {e}") from e
            self._stats["decompressions"] += 1
            return result
        raise ValueError(f"Unknown payload marker: {marker!r}")

    def get_stats(self):
        return dict(self._stats)
