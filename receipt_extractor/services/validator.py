from loguru import logger

from ..core.errors import InvalidFileType

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/jpg"})


def validate_mime_type(mime_type: str) -> None:
    """Raise InvalidFileType unless the declared MIME type is an accepted image type."""
    if mime_type not in ALLOWED_MIME_TYPES:
        logger.warning(f"Rejected file type: {mime_type}")
        raise InvalidFileType(mime_type)
