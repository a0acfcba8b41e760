#!/usr/bin/env python3
"""
Crop question images from the bottom based on the is_short_image flag.

Short images lose 402px, all others 90px. Images are overwritten in place;
use --backup to keep the originals in a sibling *_backup directory.

Usage:
    python -m scripts.crop_question_images [--dry-run] [--backup] [--id N ...] [--quality 75]
"""

import argparse
import logging
import shutil
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from PIL import Image, UnidentifiedImageError
from sqlalchemy import select

from drivetest.config import (
    QUESTION_IMAGES_DIR,
    SHORT_IMAGE_CROP_PIXELS,
    TALL_IMAGE_CROP_PIXELS,
)
from drivetest.core.logging_setup import setup_console_logging
from drivetest.database import session_scope
from drivetest.models.db.question_bank import Question
from drivetest.utils import resolve_under

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("JPEG", "PNG", "GIF", "WEBP")


class CropError(Exception):
    """Image cannot be cropped."""


def crop_pixels_for(question: Question) -> int:
    return SHORT_IMAGE_CROP_PIXELS if question.is_short_image else TALL_IMAGE_CROP_PIXELS


def backup_dir_for(images_dir: Path) -> Path:
    return images_dir.with_name(f"{images_dir.name}_backup")


def crop_image_from_bottom(file_path: Path, crop_pixels: int, quality: int = 75) -> tuple[int, int]:
    """
    Cut crop_pixels rows off the bottom of an image, overwriting it.

    Returns:
        New (width, height)
    """
    try:
        with Image.open(file_path) as img:
            img.load()
            image_format = img.format
            width, height = img.size
            if image_format not in SUPPORTED_FORMATS:
                raise CropError(f"Unsupported image type: {image_format}")

            new_height = height - crop_pixels
            if new_height <= 0:
                raise CropError(
                    f"Crop amount ({crop_pixels}px) is greater than or equal to "
                    f"image height ({height}px)"
                )
            cropped = img.crop((0, 0, width, new_height))
    except (UnidentifiedImageError, OSError) as exc:
        raise CropError(f"Could not read image: {exc}") from exc

    if image_format == "JPEG":
        cropped.save(file_path, "JPEG", quality=quality, progressive=True, optimize=True)
    elif image_format == "PNG":
        # Mode is kept, so transparency survives
        cropped.save(file_path, "PNG", compress_level=9)
    elif image_format == "WEBP":
        cropped.save(file_path, "WEBP", quality=quality)
    else:
        cropped.save(file_path, image_format)
    return width, new_height


def load_questions(db, ids: list[int] | None = None) -> list[Question]:
    """Questions that reference an image, optionally restricted to ids."""
    query = select(Question).where(Question.image.is_not(None), Question.image != "")
    if ids:
        query = query.where(Question.id.in_(ids))
    return list(db.execute(query.order_by(Question.id)).scalars().all())


def crop_question_images(
    questions: list[Question],
    images_dir: Path,
    dry_run: bool = False,
    backup: bool = False,
    quality: int = 75,
) -> dict[str, int]:
    """Crop every question image. Returns processed/skipped/errors counts."""
    summary = {"processed": 0, "skipped": 0, "errors": 0}
    backup_dir = backup_dir_for(images_dir)
    if backup and not dry_run and not backup_dir.exists():
        backup_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created backup directory: %s", backup_dir)

    for question in questions:
        file_path = resolve_under(images_dir, question.image)
        if file_path is None or not file_path.exists():
            logger.warning("Image not found: %s (Question ID: %s)", question.image, question.id)
            summary["skipped"] += 1
            continue

        crop_pixels = crop_pixels_for(question)
        if dry_run:
            logger.info(
                "Would crop %spx from bottom of %s (is_short_image: %s)",
                crop_pixels, question.image, question.is_short_image,
            )
            summary["processed"] += 1
            continue

        try:
            if backup:
                target = resolve_under(backup_dir, question.image)
                if target is None:
                    raise CropError(f"Backup path escapes {backup_dir}")
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(file_path, target)
            crop_image_from_bottom(file_path, crop_pixels, quality)
            summary["processed"] += 1
        except (CropError, OSError) as exc:
            logger.error("Failed to process %s: %s", question.image, exc)
            summary["errors"] += 1

    return summary


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crop question images from bottom based on is_short_image flag"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without actually cropping",
    )
    parser.add_argument(
        "--backup",
        action="store_true",
        help="Create backup of original images",
    )
    parser.add_argument(
        "--id",
        dest="ids",
        type=int,
        action="append",
        default=[],
        help="Process only specific question IDs (repeatable)",
    )
    parser.add_argument(
        "--quality",
        type=int,
        default=75,
        choices=range(1, 101),
        metavar="1-100",
        help="JPEG/WebP quality (default 75)",
    )
    parser.add_argument(
        "--images-dir",
        type=Path,
        default=QUESTION_IMAGES_DIR,
        help="Directory holding question images",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    setup_console_logging()
    args = parse_args(argv)

    with session_scope() as db:
        questions = load_questions(db, args.ids)

    print(f"Found {len(questions)} questions with images")
    summary = crop_question_images(
        questions,
        args.images_dir,
        dry_run=args.dry_run,
        backup=args.backup,
        quality=args.quality,
    )

    print("Summary:")
    print(f"  Processed: {summary['processed']}")
    print(f"  Skipped (not found): {summary['skipped']}")
    print(f"  Errors: {summary['errors']}")
    if args.dry_run:
        print("This was a dry run. No images were modified.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
