"""
Printify REST API client.

All calls go through one request helper that attaches the bearer token,
parses the body (JSON with a raw-text fallback) and turns error statuses into
the exceptions in errors.py.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

from captions import ListingCopy
from errors import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    PayloadTooLargeError,
    UnsupportedMediaError,
    UpstreamError,
    UpstreamUnavailableError,
    ValidationError,
    utc_timestamp,
)

PRINTIFY_API_BASE = "https://api.printify.com/v1"
USER_AGENT = "WavePrintPublisher/1.0"

# Satin poster defaults
DEFAULT_BLUEPRINT_ID = 97
DEFAULT_PRINT_PROVIDER_ID = 99
DEFAULT_VARIANT_ID = 33742  # 14" x 11"

PUBLISH_FIELDS = ["title", "description", "images", "variants", "tags", "keyFeatures", "shipping_template"]


@dataclass
class ProductDraft:
    """Payload for one create-product call."""
    title: str
    description: str
    blueprint_id: int
    print_provider_id: int
    variants: list[dict]
    print_areas: list[dict]
    tags: list[str] = field(default_factory=list)

    @classmethod
    def for_image(
        cls,
        upload_id: str,
        copy: ListingCopy,
        blueprint_id: int = DEFAULT_BLUEPRINT_ID,
        print_provider_id: int = DEFAULT_PRINT_PROVIDER_ID,
        variant_ids: Optional[list[int]] = None,
    ) -> "ProductDraft":
        """Single front print area centred on the uploaded image."""
        variant_ids = variant_ids or [DEFAULT_VARIANT_ID]
        return cls(
            title=copy.title,
            description=copy.description,
            blueprint_id=blueprint_id,
            print_provider_id=print_provider_id,
            variants=[{"id": vid, "price": copy.price_cents, "is_enabled": True} for vid in variant_ids],
            print_areas=[{
                "variant_ids": variant_ids,
                "placeholders": [{
                    "position": "front",
                    "images": [{"id": upload_id, "x": 0.5, "y": 0.5, "scale": 1, "angle": 0}],
                }],
            }],
            tags=list(copy.tags),
        )

    def to_payload(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "blueprint_id": self.blueprint_id,
            "print_provider_id": self.print_provider_id,
            "variants": self.variants,
            "print_areas": self.print_areas,
            "tags": self.tags,
        }


def parse_body(response: requests.Response):
    """JSON body if it parses, raw text otherwise, None when empty."""
    text = response.text
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _error_detail(body) -> str:
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body.get("errors") or body)
    return str(body or "").strip()[:500]


def classify_error(status: int, body=None, conflict_message: Optional[str] = None) -> ApiError:
    """Map a non-2xx Printify status to an exception."""
    detail = _error_detail(body)

    if status == 401:
        return AuthError("Printify authentication failed. Check API token.")
    if status == 413:
        return PayloadTooLargeError("Image too large for Printify API.")
    if status == 415:
        return UnsupportedMediaError("Unsupported image format.")
    if status in (400, 422):
        return ValidationError(
            f"Printify rejected the request ({detail}). Check required fields and blueprint/variant IDs.",
            status_code=status,
        )
    if status == 404:
        return NotFoundError("Product or shop not found.")
    if status == 409:
        return ConflictError(conflict_message or f"Printify reported a conflict: {detail}")
    return UpstreamError(f"Printify API error {status}: {detail}", upstream_status=status, body=body)


class PrintifyClient:
    """One method per Printify action."""

    def __init__(
        self,
        api_token: str,
        shop_id: str,
        base_url: str = PRINTIFY_API_BASE,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.api_token = api_token
        self.shop_id = str(shop_id) if shop_id else ""
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "PrintifyClient":
        return cls(
            api_token=settings.printify_api_token,
            shop_id=settings.printify_shop_id,
            base_url=settings.printify_api_base,
        )

    @property
    def headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _shop(self, shop_id=None) -> str:
        target = str(shop_id) if shop_id else self.shop_id
        if not target:
            raise ValidationError("Printify shop id is not configured")
        return target

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
        conflict_message: Optional[str] = None,
    ):
        if not self.api_token:
            raise AuthError("Printify API token is not configured")

        logging.info("Printify API: %s %s", method, endpoint)
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{endpoint}",
                headers=self.headers,
                json=payload,
                params=params,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logging.error("Printify API unreachable for %s %s: %s", method, endpoint, e)
            raise UpstreamUnavailableError(f"Printify API unreachable: {e}")

        data = parse_body(response)
        if not response.ok:
            logging.error("Printify API error %d on %s %s: %s", response.status_code, method, endpoint, data)
            raise classify_error(response.status_code, data, conflict_message)

        logging.info("Printify API: %d %s", response.status_code, endpoint)
        return data

    def upload_image(self, image_data: str, filename: str) -> dict:
        """
        Upload an image. Accepts a data URL, bare base64, or a public http(s)
        URL (passthrough images), which Printify fetches itself.
        """
        if image_data.startswith(("http://", "https://")):
            payload = {"file_name": filename, "url": image_data}
        else:
            contents = image_data.split(",", 1)[1] if "," in image_data else image_data
            payload = {"file_name": filename, "contents": contents}
        return self._request("POST", "/uploads/images.json", payload)

    def create_product(self, draft) -> dict:
        payload = draft.to_payload() if isinstance(draft, ProductDraft) else draft
        return self._request("POST", f"/shops/{self._shop()}/products.json", payload)

    def publish_to_shop(self, product_id: str, shop_id=None) -> dict:
        payload = {key: True for key in PUBLISH_FIELDS}
        return self._request(
            "POST",
            f"/shops/{self._shop(shop_id)}/products/{product_id}/publish.json",
            payload,
            conflict_message="Product already published to this shop.",
        )

    def get_shops(self) -> list:
        return self._request("GET", "/shops.json")

    def get_products(self, shop_id=None, page: int = 1, limit: int = 10) -> dict:
        return self._request(
            "GET",
            f"/shops/{self._shop(shop_id)}/products.json",
            params={"page": page, "limit": limit},
        )

    def get_product(self, product_id: str) -> dict:
        return self._request("GET", f"/shops/{self._shop()}/products/{product_id}.json")

    def delete_product(self, product_id: str):
        return self._request(
            "DELETE",
            f"/shops/{self._shop()}/products/{product_id}.json",
            conflict_message="Cannot delete a published product.",
        )

    def update_product(self, product_id: str, data: dict) -> dict:
        return self._request("PUT", f"/shops/{self._shop()}/products/{product_id}.json", data)

    def get_blueprints(self) -> list:
        return self._request("GET", "/catalog/blueprints.json")

    def get_print_providers(self, blueprint_id: int) -> list:
        return self._request("GET", f"/catalog/blueprints/{blueprint_id}/print_providers.json")

    def get_variants(self, blueprint_id: int, provider_id: int) -> dict:
        return self._request(
            "GET", f"/catalog/blueprints/{blueprint_id}/print_providers/{provider_id}/variants.json"
        )

    def check_health(self) -> dict:
        """Connection and shop check. Never raises."""
        try:
            shops = self.get_shops() or []
            current = next((s for s in shops if str(s.get("id")) == self.shop_id), None)
            return {
                "status": "healthy",
                "apiConnection": True,
                "shopConnected": current is not None,
                "shopId": self.shop_id,
                "shopTitle": current.get("title", "Unknown") if current else "Unknown",
                "timestamp": utc_timestamp(),
            }
        except Exception as e:
            logging.warning("Printify health check failed: %s", e)
            return {
                "status": "unhealthy",
                "apiConnection": False,
                "shopConnected": False,
                "shopId": self.shop_id,
                "error": str(e),
                "timestamp": utc_timestamp(),
            }
