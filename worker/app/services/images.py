import base64

from worker.app.config import settings
from worker.app.errors import ValidationError
from worker.app.models import ImageInput


def file_too_large(size: int, max_bytes: int) -> ValidationError:
    return ValidationError(
        f"file size {size} exceeds limit {max_bytes}",
        "file_too_large",
        max_mb=f"{max_bytes / (1024 * 1024):g}",
    )


def check_size(size, max_bytes: int = None) -> None:
    """Reject a declared size up front; an unknown size (None) passes."""
    max_bytes = max_bytes if max_bytes is not None else settings.MAX_FILE_BYTES
    if size is not None and size > max_bytes:
        raise file_too_large(size, max_bytes)


def validate_image(image: ImageInput, max_bytes: int = None, mime_types=None) -> None:
    """Size and declared-MIME checks; raises ValidationError before any other work."""
    mime_types = list(mime_types or settings.SUPPORTED_MIME_TYPES)

    check_size(image.size, max_bytes)

    mime = (image.mime_type or "").split(";")[0].strip().lower()
    if mime not in mime_types:
        raise ValidationError(
            f"unsupported mime type {image.mime_type!r}",
            "unsupported_type",
            supported=", ".join(mime_types),
        )


def to_base64(image: ImageInput) -> str:
    return base64.b64encode(image.data).decode("ascii")
