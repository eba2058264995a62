#!/usr/bin/env python3
"""
Caption Batch Workflow

Runs stock photos through the compositor one at a time, in input order, and
pairs each with a caption and SEO title. A photo that fails to composite is
still returned (as a passthrough) so the batch always completes.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Iterator, Optional

from captions import CaptionSelector, seo_filename
from errors import NotFoundError, ValidationError, utc_timestamp
from image_compositor import CompositeOptions, compose
from pexels_client import SourceImage

REVIEW_STATUSES = ("pending", "approved", "rejected")


@dataclass
class CaptionedImage:
    """A composited photo awaiting review."""
    id: str
    original: str
    processed: str
    caption: str
    title: str
    filename: str = ""
    photographer: str = ""
    photographer_url: str = ""
    width: int = 0
    height: int = 0
    created_at: str = ""
    degraded: bool = False
    status: str = "pending"
    edited: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "original": self.original,
            "processed": self.processed,
            "caption": self.caption,
            "title": self.title,
            "filename": self.filename,
            "photographer": self.photographer,
            "photographer_url": self.photographer_url,
            "width": self.width,
            "height": self.height,
            "createdAt": self.created_at,
            "degraded": self.degraded,
            "status": self.status,
            "edited": self.edited,
        }


@dataclass
class BatchConfig:
    options: CompositeOptions = field(default_factory=CompositeOptions.for_print)
    style: str = "print_ready"
    selector: CaptionSelector = field(default_factory=CaptionSelector)
    target_count: int = 20


def _caption_image(image: SourceImage, index: int, config: BatchConfig) -> CaptionedImage:
    item = CaptionedImage(
        id=image.id,
        original=image.url,
        processed=image.url,
        caption="",
        title="",
        filename=image.id,
        photographer=image.photographer,
        photographer_url=image.photographer_url,
        width=image.width,
        height=image.height,
        created_at=utc_timestamp(),
        degraded=True,
    )

    try:
        item.caption, item.title = config.selector.select(index)
        item.filename = seo_filename(item.title, index)
        result = compose(image.url, item.caption, config.options, style=config.style)
    except Exception:
        logging.exception("Unexpected error captioning image %s", image.id)
        return item

    item.processed = result.processed
    item.degraded = result.degraded
    return item


def iter_batch(images: Iterable[SourceImage], config: Optional[BatchConfig] = None) -> Iterator[CaptionedImage]:
    """
    Yield one CaptionedImage per source image, in order.

    Each image is fully processed before the next starts. Re-invoke with the
    same input to restart.
    """
    config = config or BatchConfig()
    for index, image in enumerate(list(images)[:config.target_count]):
        logging.info("Processing image %d: %s", index + 1, image.id)
        yield _caption_image(image, index, config)


def process_batch(
    images: Iterable[SourceImage],
    config: Optional[BatchConfig] = None,
    progress_callback: Optional[Callable[[int, int, CaptionedImage], None]] = None,
) -> list[CaptionedImage]:
    """
    Caption a batch of images.

    Args:
        images: Source images, processed in order
        config: Compositor options, style, caption selector, max count
        progress_callback: Optional callback(done, total, item) after each image

    Returns:
        One CaptionedImage per processed input image
    """
    config = config or BatchConfig()
    images = list(images)
    total = min(len(images), config.target_count)

    results = []
    for item in iter_batch(images, config):
        results.append(item)
        if progress_callback:
            progress_callback(len(results), total, item)

    fallbacks = sum(1 for item in results if item.degraded)
    logging.info(
        "Batch complete: %d images (%d composited, %d passthrough)",
        len(results), len(results) - fallbacks, fallbacks,
    )
    return results


def review(
    images: list[CaptionedImage],
    image_id: str,
    status: Optional[str] = None,
    caption: Optional[str] = None,
) -> CaptionedImage:
    """
    Set review status and/or caption for one image, found by id.

    Edits apply to local state only; the processed image is not regenerated.
    """
    if status is not None and status not in REVIEW_STATUSES:
        raise ValidationError(f"Invalid review status '{status}'. Use one of: {', '.join(REVIEW_STATUSES)}")

    for position, item in enumerate(images):
        if item.id == str(image_id):
            changes = {}
            if status is not None:
                changes["status"] = status
            if caption is not None and caption != item.caption:
                changes["caption"] = caption
                changes["edited"] = True
            images[position] = replace(item, **changes)
            return images[position]

    raise NotFoundError(f"Image {image_id} not found in batch")


def approved(images: Iterable[CaptionedImage]) -> list[CaptionedImage]:
    return [item for item in images if item.status == "approved"]
