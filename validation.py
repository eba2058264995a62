"""
Request gate: field checks, image payload checks and a sliding-window rate
limiter. Everything here runs before a Printify call is made.
"""

import math
import random
import re
import time
from typing import Callable, Iterable, Optional

from errors import RateLimitError, ValidationError

MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10 MiB
IMAGE_DATA_URL_PATTERN = re.compile(r"^data:image/(jpeg|jpg|png|gif|webp);base64,")

SCRIPT_TAG_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
JS_PROTOCOL_PATTERN = re.compile(r"javascript:", re.IGNORECASE)
EVENT_HANDLER_PATTERN = re.compile(r"on\w+\s*=", re.IGNORECASE)


def require_fields(body: Optional[dict], fields: Iterable[str]) -> None:
    """Raise ValidationError naming every missing (absent or None) field."""
    body = body or {}
    missing = [name for name in fields if body.get(name) is None]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


def decoded_size(base64_data: str) -> int:
    """Exact decoded byte count of a base64 string."""
    data = base64_data.strip()
    padding = len(data) - len(data.rstrip("="))
    return len(data) * 3 // 4 - padding


def validate_image_upload(body: Optional[dict]) -> None:
    require_fields(body, ["imageData", "filename"])
    image_data = body["imageData"]

    if not isinstance(image_data, str) or not IMAGE_DATA_URL_PATTERN.match(image_data):
        raise ValidationError("Invalid image data format. Must be a base64 encoded jpeg, png, gif or webp image.")

    if decoded_size(image_data.split(",", 1)[1]) > MAX_IMAGE_BYTES:
        raise ValidationError("Image too large. Maximum size is 10MB.")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_product_creation(body: Optional[dict]) -> dict:
    """Check a product draft and return it with title/description trimmed."""
    require_fields(body, ["title", "description", "blueprint_id", "print_provider_id"])

    title = str(body["title"]).strip()
    description = str(body["description"]).strip()

    if len(title) < 3:
        raise ValidationError("Title must be at least 3 characters long")
    if len(description) < 10:
        raise ValidationError("Description must be at least 10 characters long")
    if not _is_int(body["blueprint_id"]):
        raise ValidationError("Valid blueprint_id is required")
    if not _is_int(body["print_provider_id"]):
        raise ValidationError("Valid print_provider_id is required")

    return {**body, "title": title, "description": description}


def validate_shop_publish(body: Optional[dict]) -> None:
    require_fields(body, ["productId"])
    shop_id = body.get("shopId")
    if shop_id is not None and not re.fullmatch(r"\d+", str(shop_id)):
        raise ValidationError("shopId must be a valid number")


def sanitize_strings(value):
    """
    Strip script tags, javascript: and inline event handlers, recursively.

    Image data URLs are left alone; base64 text can contain "on...=".
    """
    if isinstance(value, str):
        if IMAGE_DATA_URL_PATTERN.match(value):
            return value
        value = SCRIPT_TAG_PATTERN.sub("", value)
        value = JS_PROTOCOL_PATTERN.sub("", value)
        value = EVENT_HANDLER_PATTERN.sub("", value)
        return value.strip()
    if isinstance(value, dict):
        return {key: sanitize_strings(item) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize_strings(item) for item in value]
    return value


class RateLimiter:
    """
    Sliding-window limiter keyed by client id.

    Timestamps live in memory for this process only. Stale clients are swept
    on a random fraction of calls.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
        sweep_probability: float = 0.01,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.rng = rng
        self.sweep_probability = sweep_probability
        self.requests: dict[str, list[float]] = {}

    def check(self, client_id: str) -> None:
        """Record a request, or raise RateLimitError if the window is full."""
        now = self.clock()
        window_start = now - self.window_seconds

        recent = [ts for ts in self.requests.get(client_id, []) if ts > window_start]

        if len(recent) >= self.max_requests:
            self.requests[client_id] = recent
            retry_after = max(1, math.ceil(recent[0] + self.window_seconds - now))
            raise RateLimitError("Too many requests. Please try again later.", retry_after=retry_after)

        recent.append(now)
        self.requests[client_id] = recent

        if self.rng() < self.sweep_probability:
            self.sweep(window_start)

    def sweep(self, window_start: float) -> None:
        for client_id in list(self.requests):
            kept = [ts for ts in self.requests[client_id] if ts > window_start]
            if kept:
                self.requests[client_id] = kept
            else:
                del self.requests[client_id]
