import io
import mimetypes

from PIL import Image, UnidentifiedImageError

from .core.config import settings
from .exceptions import ImageTooLargeError, UnsupportedImageError


def validate_slide_image(data: bytes, mime_type: str) -> None:
    """Reject uploads that are the wrong type, too large, or not decodable."""
    if mime_type not in settings.ALLOWED_IMAGE_TYPES:
        raise UnsupportedImageError(f"File type {mime_type} not allowed")
    if len(data) > settings.MAX_FILE_SIZE:
        raise ImageTooLargeError(f"File too large (max {settings.MAX_FILE_SIZE // (1024*1024)}MB)")
    if not data:
        raise UnsupportedImageError("Uploaded file is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise UnsupportedImageError("Uploaded file is not a readable image") from e


def slide_filename(mime_type: str) -> str:
    return f"slide{mimetypes.guess_extension(mime_type) or '.img'}"
