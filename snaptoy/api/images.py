"""
Image preparation for upload.

The backend accepts a single JPEG per transformation. Any image Pillow can
read is normalized here: EXIF orientation applied, converted to RGB and
re-encoded at the same quality the camera picker used.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import io

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import InvalidImageError, NoFileError


JPEG_QUALITY = 80
UPLOAD_FILENAME = "photo.jpg"
UPLOAD_CONTENT_TYPE = "image/jpeg"


@dataclass
class PreparedImage:
    """An image ready for the multipart ``image`` field."""
    filename: str
    content: bytes
    content_type: str = UPLOAD_CONTENT_TYPE
    width: int = 0
    height: int = 0

    def as_file_field(self) -> tuple[str, bytes, str]:
        """The (filename, bytes, content type) tuple requests expects."""
        return (self.filename, self.content, self.content_type)


def prepare_image(image_ref: str | Path) -> PreparedImage:
    """
    Load and JPEG-encode a local image.

    Raises NoFileError when the path does not point at a file and
    InvalidImageError when the file is not a readable image, including
    images over Pillow's pixel limit and corrupt metadata.
    """
    if image_ref is None or str(image_ref).strip() == "":
        raise NoFileError()

    path = Path(image_ref).expanduser()
    if not path.is_file():
        raise NoFileError(f"Image not found: {path}")

    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=JPEG_QUALITY)
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise InvalidImageError(f"Could not read image {path.name}: {e}") from e

    return PreparedImage(
        filename=UPLOAD_FILENAME,
        content=buffer.getvalue(),
        width=width,
        height=height,
    )
