#!/usr/bin/env python3
"""
Caption Compositor

Turns a stock photo into a captioned print file:
1. Loads the source (URL, data URL, local path or raw bytes)
2. Scales it to cover the print canvas with a biased crop
3. Draws the caption on a semi-transparent plate near the bottom
4. Encodes the result as a JPEG data URL

If anything goes wrong the original source is handed back unchanged and the
result is flagged as degraded, so a batch never stops on one bad photo.

Styles:
  print_ready    - white text, black plate, maximum JPEG quality
  preview_gold   - gold text, darker plate, preview quality
  preview_yellow - yellow text, black plate, preview quality
"""

import argparse
import base64
import binascii
import io
import logging
import re
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import requests
from PIL import Image, ImageDraw, ImageFont

# Print canvas for poster blueprints (pixels)
PRINT_WIDTH = 4200
PRINT_HEIGHT = 3300

LOAD_TIMEOUT_SECONDS = 10  # whole download, not per read
DOWNLOAD_CHUNK_BYTES = 64 * 1024

# Font sizing
FONT_SIZE_RATIO = 0.04  # 4% of canvas width
LONG_CAPTION_CHARS = 40
VERY_LONG_CAPTION_CHARS = 60
LONG_CAPTION_FACTOR = 0.85
VERY_LONG_CAPTION_FACTOR = 0.75
DEFAULT_MIN_FONT_SIZE = 40
DEFAULT_MAX_FONT_SIZE = 120

# Cover crop keeps more of the lower part of a wave photo in frame
CROP_BIAS_X = 0.40
CROP_BIAS_Y = 0.25

# Caption placement
TEXT_CENTER_Y = 0.82  # fraction of canvas height
EDGE_MARGIN = 20
SHADOW_OFFSET = 2
SHADOW_COLOR = (0, 0, 0, 128)

PRINT_QUALITY = 100
PREVIEW_QUALITY = 92

FONT_CANDIDATES = (
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "Arial Bold.ttf",
    "arialbd.ttf",
)

DATA_URL_PATTERN = re.compile(r"^data:image/[a-z+]+;base64,", re.IGNORECASE)


@dataclass(frozen=True)
class CaptionStyle:
    """Fixed colours and encoding quality for one output variant."""
    name: str
    text_color: tuple
    plate_color: tuple  # RGBA
    quality: int


STYLES = {
    "print_ready": CaptionStyle("print_ready", (255, 255, 255, 255), (0, 0, 0, 191), PRINT_QUALITY),
    "preview_gold": CaptionStyle("preview_gold", (255, 215, 0, 255), (0, 0, 0, 204), PREVIEW_QUALITY),
    "preview_yellow": CaptionStyle("preview_yellow", (255, 255, 0, 255), (0, 0, 0, 191), PREVIEW_QUALITY),
}


@dataclass
class CompositeOptions:
    """Canvas and font bounds. Both canvas dimensions set = print path."""
    canvas_width: Optional[int] = None
    canvas_height: Optional[int] = None
    min_font_size: float = DEFAULT_MIN_FONT_SIZE
    max_font_size: float = DEFAULT_MAX_FONT_SIZE
    load_timeout: float = LOAD_TIMEOUT_SECONDS

    @property
    def is_print(self) -> bool:
        return bool(self.canvas_width and self.canvas_height)

    @classmethod
    def for_print(cls, width: int = PRINT_WIDTH, height: int = PRINT_HEIGHT) -> "CompositeOptions":
        return cls(canvas_width=width, canvas_height=height)


@dataclass
class CompositeResult:
    """Output of compose(). processed == original when degraded."""
    processed: str
    original: str
    degraded: bool = False
    width: Optional[int] = None
    height: Optional[int] = None
    font_size: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "original": self.original,
            "degraded": self.degraded,
            "width": self.width,
            "height": self.height,
            "fontSize": self.font_size,
            "error": self.error,
        }


def get_style(name: str) -> CaptionStyle:
    try:
        return STYLES[name]
    except KeyError:
        raise ValueError(f"Unknown caption style '{name}'. Choose from: {', '.join(STYLES)}")


def clean_caption(caption: str) -> str:
    """Strip the [bracket] markers used in the caption pool."""
    return re.sub(r"[\[\]]", "", caption or "").strip()


def compute_font_size(canvas_width: float, caption_length: int, min_size: float, max_size: float) -> float:
    """
    Font size for a caption.

    4% of the canvas width, stepped down for long captions (x0.85 above 40
    characters, x0.75 above 60) and clamped to [min_size, max_size].
    """
    size = canvas_width * FONT_SIZE_RATIO
    if caption_length > VERY_LONG_CAPTION_CHARS:
        size = size * VERY_LONG_CAPTION_FACTOR
    elif caption_length > LONG_CAPTION_CHARS:
        size = size * LONG_CAPTION_FACTOR
    return min(max(size, min_size), max_size)


def cover_crop_box(src_width: int, src_height: int, canvas_width: int, canvas_height: int) -> tuple:
    """
    Scale-and-crop geometry for filling the canvas with no empty border.

    Horizontal overflow is cropped 40% from the left, vertical overflow 25%
    from the top.

    Returns:
        ((scaled_width, scaled_height), (left, top, right, bottom))
    """
    scale = max(canvas_width / src_width, canvas_height / src_height)
    scaled_width = max(canvas_width, round(src_width * scale))
    scaled_height = max(canvas_height, round(src_height * scale))

    left = int((scaled_width - canvas_width) * CROP_BIAS_X)
    top = int((scaled_height - canvas_height) * CROP_BIAS_Y)

    return (scaled_width, scaled_height), (left, top, left + canvas_width, top + canvas_height)


def decode_data_url(data_url: str) -> bytes:
    """Decode a base64 data URL (or bare base64) to bytes."""
    payload = data_url.split(",", 1)[1] if "," in data_url else data_url
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}")


def encode_data_url(image: Image.Image, quality: int = PRINT_QUALITY) -> str:
    """Encode an image as a JPEG data URL."""
    buffer = io.BytesIO()
    if image.mode != "RGB":
        image = image.convert("RGB")
    image.save(buffer, "JPEG", quality=quality)
    return "data:image/jpeg;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def _fetch(url: str, timeout: float, deadline: float) -> bytes:
    response = requests.get(url, timeout=timeout, stream=True)
    try:
        response.raise_for_status()
        data = bytearray()
        for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
            data.extend(chunk)
            if time.monotonic() > deadline:
                raise TimeoutError(f"Download exceeded {timeout}s")
        return bytes(data)
    finally:
        response.close()


def download_image(url: str, timeout: float = LOAD_TIMEOUT_SECONDS) -> bytes:
    """
    Download url, failing with TimeoutError once timeout seconds have passed
    in total.

    requests' own timeout only bounds each socket wait, so a server trickling
    bytes could hold the download open indefinitely. The fetch runs on a
    worker thread and is abandoned at the deadline; the worker stops at its
    next chunk or read timeout.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="image-download")
    try:
        future = executor.submit(_fetch, url, timeout, time.monotonic() + timeout)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            raise TimeoutError(f"Image download exceeded {timeout}s: {url}")
    finally:
        executor.shutdown(wait=False)


def load_image(source: Union[str, bytes], timeout: float = LOAD_TIMEOUT_SECONDS) -> Image.Image:
    """Load an image from an http(s) URL, data URL, local path or raw bytes."""
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    elif DATA_URL_PATTERN.match(source):
        data = decode_data_url(source)
    elif source.startswith(("http://", "https://")):
        data = download_image(source, timeout)
    else:
        data = Path(source).read_bytes()

    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def load_font(size: float) -> ImageFont.FreeTypeFont:
    size = max(1, int(round(size)))
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def draw_caption(image: Image.Image, caption: str, font_size: float, style: CaptionStyle) -> Image.Image:
    """Draw the plate and caption text; returns a new RGB image."""
    width, height = image.size
    base = image.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    font = load_font(font_size)

    left, top, right, bottom = draw.textbbox((0, 0), caption, font=font, anchor="mm")
    text_width = right - left
    text_height = bottom - top

    center_x = width / 2
    min_y = text_height / 2 + EDGE_MARGIN
    max_y = height - text_height / 2 - EDGE_MARGIN
    center_y = max(min_y, min(max_y, height * TEXT_CENTER_Y))

    padding_x = max(30, font_size * 0.8)
    padding_y = max(20, font_size * 0.4)
    plate = (
        center_x - text_width / 2 - padding_x,
        center_y - text_height / 2 - padding_y,
        center_x + text_width / 2 + padding_x,
        center_y + text_height / 2 + padding_y,
    )
    draw.rectangle(plate, fill=style.plate_color)
    draw.text((center_x + SHADOW_OFFSET, center_y + SHADOW_OFFSET), caption, font=font, fill=SHADOW_COLOR, anchor="mm")
    draw.text((center_x, center_y), caption, font=font, fill=style.text_color, anchor="mm")

    return Image.alpha_composite(base, overlay).convert("RGB")


def compose(
    source: str,
    caption: str,
    options: Optional[CompositeOptions] = None,
    style: str = "print_ready",
) -> CompositeResult:
    """
    Composite a caption onto a source image.

    Args:
        source: http(s) URL, data URL or local path of the photo
        caption: Caption text; [bracket] markers are stripped
        options: Canvas size, font bounds and load timeout (default: source-sized canvas)
        style: One of STYLES

    Returns:
        CompositeResult; on any failure (unknown style and load timeout
        included) processed == original and degraded=True. Never raises.
    """
    options = options or CompositeOptions()

    try:
        caption_style = get_style(style)
        image = load_image(source, options.load_timeout)
        if image.mode != "RGB":
            image = image.convert("RGB")

        if options.is_print:
            scaled_size, crop_box = cover_crop_box(
                image.width, image.height, options.canvas_width, options.canvas_height
            )
            image = image.resize(scaled_size, Image.Resampling.LANCZOS).crop(crop_box)

        text = clean_caption(caption)
        font_size = None
        if text:
            font_size = compute_font_size(image.width, len(text), options.min_font_size, options.max_font_size)
            image = draw_caption(image, text, font_size, caption_style)

        processed = encode_data_url(image, caption_style.quality)
        logging.info(
            "Composited caption '%s' onto %dx%d canvas (%s)",
            text, image.width, image.height, caption_style.name,
        )
        return CompositeResult(
            processed=processed,
            original=source,
            width=image.width,
            height=image.height,
            font_size=font_size,
        )

    except Exception as e:
        logging.warning("Compositing failed for %s, passing original through: %s", _describe(source), e)
        return CompositeResult(processed=source, original=source, degraded=True, error=str(e))


def _describe(source) -> str:
    if isinstance(source, str) and DATA_URL_PATTERN.match(source):
        return f"data URL ({len(source)} chars)"
    return str(source)[:200]


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    parser = argparse.ArgumentParser(description="Overlay a caption on an image")
    parser.add_argument("source", help="Image URL or local path")
    parser.add_argument("caption", help="Caption text")
    parser.add_argument("--output", type=Path, required=True, help="Output JPEG path")
    parser.add_argument("--style", choices=sorted(STYLES), default="print_ready")
    parser.add_argument("--preview", action="store_true", help="Keep source size instead of the print canvas")
    args = parser.parse_args()

    options = CompositeOptions() if args.preview else CompositeOptions.for_print()
    result = compose(args.source, args.caption, options, style=args.style)
    if result.degraded:
        logging.error("Could not composite %s: %s", args.source, result.error)
        return 1

    args.output.write_bytes(decode_data_url(result.processed))
    logging.info("Saved %s (%dx%d)", args.output, result.width, result.height)
    return 0


if __name__ == "__main__":
    sys.exit(main())
