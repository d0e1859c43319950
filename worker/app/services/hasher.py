"""Content fingerprints for uploaded images.

The fingerprint is sha256(file bytes), the same document-hash rule the
worker uses elsewhere. It is a cache key only.
"""

from __future__ import annotations

import hashlib
import inspect
from typing import Any, Optional

from worker.app.errors import ImageReadError, ValidationError
from worker.app.services.images import check_size, file_too_large

READ_CHUNK_BYTES = 1024 * 1024


def fingerprint(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


async def read_image_bytes(
    source: Any,
    chunk_size: int = READ_CHUNK_BYTES,
    max_bytes: Optional[int] = None,
) -> bytes:
    """
    Consume an entire byte source and return its content.

    Accepts raw bytes, a binary file-like object, or anything with an async
    ``read(n)`` (e.g. FastAPI's UploadFile). Raises ImageReadError if the
    stream cannot be read to the end, and ValidationError as soon as more
    than ``max_bytes`` have arrived.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        if max_bytes is not None:
            check_size(len(source), max_bytes)
        return bytes(source)

    read = getattr(source, "read", None)
    if read is None:
        raise ImageReadError(f"unreadable image source: {type(source).__name__}")

    buf = bytearray()
    try:
        while True:
            chunk = read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                break
            buf.extend(chunk)
            if max_bytes is not None and len(buf) > max_bytes:
                raise file_too_large(len(buf), max_bytes)
    except (ImageReadError, ValidationError):
        raise
    except Exception as e:
        raise ImageReadError(f"failed reading image stream: {e}") from e
    return bytes(buf)


async def fingerprint_stream(source: Any) -> str:
    return fingerprint(await read_image_bytes(source))
