"""Image processing service for profile pictures."""
import logging
import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile, status
from PIL import Image, UnidentifiedImageError

from drivetest.config import (
    PROFILE_IMAGE_ALLOWED_EXTENSIONS,
    PROFILE_IMAGE_MAX_DIMENSION,
    PROFILE_IMAGE_MAX_SIZE_BYTES,
    PROFILE_IMAGES_DIR,
)
from drivetest.utils import resolve_under

logger = logging.getLogger(__name__)

MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def validate_profile_image(file: UploadFile) -> None:
    """
    Validate uploaded profile image.

    Raises:
        HTTPException: If file is invalid
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No filename provided",
        )

    ext = Path(file.filename).suffix.lower()
    if ext not in PROFILE_IMAGE_ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(PROFILE_IMAGE_ALLOWED_EXTENSIONS))}",
        )

    if file.content_type and file.content_type not in set(MEDIA_TYPES.values()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid content type: {file.content_type}",
        )


def _resize_image(image_path: Path) -> None:
    """Shrink image to fit within the max dimension, keeping aspect ratio."""
    try:
        with Image.open(image_path) as img:
            width, height = img.size
            if width <= PROFILE_IMAGE_MAX_DIMENSION and height <= PROFILE_IMAGE_MAX_DIMENSION:
                return

            if img.mode in ("RGBA", "P") and image_path.suffix.lower() in (".jpg", ".jpeg"):
                img = img.convert("RGB")

            ratio = min(PROFILE_IMAGE_MAX_DIMENSION / width, PROFILE_IMAGE_MAX_DIMENSION / height)
            new_size = (int(width * ratio), int(height * ratio))
            resized = img.resize(new_size, Image.Resampling.LANCZOS)

        resized.save(image_path, optimize=True, quality=85)
        logger.info("Resized profile image from %sx%s to %s", width, height, new_size)
    except (UnidentifiedImageError, OSError) as exc:
        # Keep the original file if it cannot be resized
        logger.error("Error resizing image %s: %s", image_path.name, exc)


async def save_profile_image(file: UploadFile, user_id: int) -> str:
    """
    Validate, store and resize an uploaded profile image.

    Returns:
        Stored filename (relative to PROFILE_IMAGES_DIR)
    """
    validate_profile_image(file)

    content = await file.read()
    if len(content) > PROFILE_IMAGE_MAX_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {PROFILE_IMAGE_MAX_SIZE_BYTES // (1024 * 1024)}MB",
        )

    ext = Path(file.filename).suffix.lower()
    filename = f"{user_id}_{uuid.uuid4().hex[:8]}{ext}"
    image_path = PROFILE_IMAGES_DIR / filename
    PROFILE_IMAGES_DIR.mkdir(parents=True, exist_ok=True)

    try:
        image_path.write_bytes(content)
        _resize_image(image_path)
    except OSError as exc:
        if image_path.exists():
            image_path.unlink()
        logger.error("Error saving profile image: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save profile image",
        )

    logger.info("Saved profile image for user %s: %s", user_id, filename)
    return filename


def delete_profile_image(filename: str | None) -> bool:
    """Delete a stored profile image. Returns False if there was none."""
    if not filename:
        return False

    full_path = resolve_under(PROFILE_IMAGES_DIR, filename)
    if full_path is None or not full_path.exists():
        return False
    try:
        full_path.unlink()
    except OSError as exc:
        logger.error("Error deleting profile image %s: %s", filename, exc)
        return False
    logger.info("Deleted profile image: %s", filename)
    return True


def get_profile_image_url(user_id: int, filename: str | None) -> str | None:
    """Public URL for a user's profile image."""
    if not filename:
        return None
    return f"/api/users/{user_id}/profile-image"


def get_profile_image_path(filename: str | None) -> Path | None:
    """Filesystem path of a stored profile image, if it exists."""
    full_path = resolve_under(PROFILE_IMAGES_DIR, filename)
    if full_path is not None and full_path.exists():
        return full_path
    return None


def media_type_for(path: Path) -> str:
    return MEDIA_TYPES.get(path.suffix.lower(), "image/jpeg")
