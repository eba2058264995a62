#!/usr/bin/env python3
"""
Product Publishing Workflow

Creates, publishes and deletes Printify products in bulk. Items run one at a
time with a fixed pause between calls; each item's failure is recorded in the
summary and the loop carries on. There is no retry and no cancellation: a
bulk call always runs to the end of its list.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from captions import DEFAULT_CONTEXT, listing_copy
from errors import ValidationError
from printify_client import (
    DEFAULT_BLUEPRINT_ID,
    DEFAULT_PRINT_PROVIDER_ID,
    PrintifyClient,
    ProductDraft,
)

BULK_DELETE_CONFIRMATION = "DELETE ALL LISTINGS"
BULK_DELAY_SECONDS = 0.1


@dataclass
class BulkOperationResult:
    product_id: Optional[str]
    success: bool
    error: Optional[str] = None
    image_id: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"productId": self.product_id, "success": self.success}
        if self.image_id is not None:
            result["imageId"] = self.image_id
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class BulkSummary:
    """Outcome of one bulk call. succeeded + failed == total_requested."""
    action: str  # deleted | published | created
    total_requested: int
    results: list[BulkOperationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict:
        return {
            "totalRequested": self.total_requested,
            self.action: self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


class ProductCache:
    """
    Local copy of products this process created or listed.

    Printify is the source of truth; entries may be stale until refresh().
    """

    def __init__(self):
        self._products: dict[str, dict] = {}

    def add(self, product: dict) -> None:
        if product.get("id") is not None:
            self._products[str(product["id"])] = product

    def remove(self, product_id: str) -> Optional[dict]:
        return self._products.pop(str(product_id), None)

    def get(self, product_id: str) -> Optional[dict]:
        return self._products.get(str(product_id))

    def all(self) -> list[dict]:
        return list(self._products.values())

    def refresh(self, remote_products: Iterable[dict]) -> int:
        """Merge remote fields into known entries. Returns entries updated."""
        updated = 0
        for remote in remote_products:
            key = str(remote.get("id"))
            if key in self._products:
                self._products[key] = {**self._products[key], **remote}
                updated += 1
        return updated

    def __len__(self) -> int:
        return len(self._products)


class ProductPublisher:
    """Sequential bulk operations against a PrintifyClient."""

    def __init__(
        self,
        client: PrintifyClient,
        delay: float = BULK_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        cache: Optional[ProductCache] = None,
    ):
        self.client = client
        self.delay = delay
        self.sleep = sleep
        self.cache = cache if cache is not None else ProductCache()

    def create_with_publish(self, draft, shop_id=None) -> dict:
        """
        Create a product, then try to publish it.

        A publish failure does not fail the create; it is recorded on the
        returned product as published=False with a publishNote.
        """
        product = self.client.create_product(draft)
        product_id = product.get("id")
        logging.info("Product created: %s", product_id)

        try:
            self.client.publish_to_shop(product_id, shop_id)
            product["published"] = True
            logging.info("Product auto-published: %s", product_id)
        except Exception as e:
            logging.warning("Auto-publish failed for %s: %s", product_id, e)
            product["published"] = False
            product["publishNote"] = f"Auto-publish failed, manual publishing required ({e})"

        self.cache.add(product)
        return product

    def _run(self, action: str, items: list, operation: Callable) -> BulkSummary:
        summary = BulkSummary(action=action, total_requested=len(items))

        for position, item in enumerate(items):
            if position:
                self.sleep(self.delay)
            try:
                summary.results.append(operation(item))
            except Exception as e:
                logging.warning("Bulk %s failed for %s: %s", action, item, e)
                summary.results.append(self._failure(item, e))

        logging.info(
            "Bulk %s complete: %d requested, %d succeeded, %d failed",
            action, summary.total_requested, summary.succeeded, summary.failed,
        )
        return summary

    @staticmethod
    def _failure(item, error: Exception) -> BulkOperationResult:
        image_id = getattr(item, "id", None)
        if image_id is not None:
            return BulkOperationResult(product_id=None, success=False, error=str(error), image_id=image_id)
        return BulkOperationResult(product_id=str(item), success=False, error=str(error))

    def bulk_delete(self, product_ids: list, confirmation_phrase: str) -> BulkSummary:
        """Delete every id; requires the exact confirmation phrase."""
        if confirmation_phrase != BULK_DELETE_CONFIRMATION:
            raise ValidationError(f'Bulk delete requires the confirmation phrase "{BULK_DELETE_CONFIRMATION}"')

        def delete(product_id):
            self.client.delete_product(product_id)
            self.cache.remove(product_id)
            return BulkOperationResult(product_id=str(product_id), success=True)

        return self._run("deleted", list(product_ids), delete)

    def bulk_publish(self, product_ids: list, shop_id=None) -> BulkSummary:
        def publish(product_id):
            self.client.publish_to_shop(product_id, shop_id)
            cached = self.cache.get(product_id)
            if cached is not None:
                cached["published"] = True
                cached.pop("publishNote", None)
            return BulkOperationResult(product_id=str(product_id), success=True)

        return self._run("published", list(product_ids), publish)

    def create_products(
        self,
        images: list,
        context: str = DEFAULT_CONTEXT,
        blueprint_id: int = DEFAULT_BLUEPRINT_ID,
        print_provider_id: int = DEFAULT_PRINT_PROVIDER_ID,
        variant_ids: Optional[list[int]] = None,
        shop_id=None,
    ) -> BulkSummary:
        """
        Upload, create and auto-publish one product per captioned image.
        """
        def create(image):
            upload = self.client.upload_image(image.processed, f"{image.filename or image.id}.jpg")
            copy = listing_copy(image.caption, context)
            draft = ProductDraft.for_image(upload["id"], copy, blueprint_id, print_provider_id, variant_ids)
            product = self.create_with_publish(draft, shop_id)
            return BulkOperationResult(product_id=str(product.get("id")), success=True, image_id=image.id)

        return self._run("created", list(images), create)
