#!/usr/bin/env python3
"""
Tests for bulk product operations. The Printify client is a mock and sleep is
recorded instead of waited.
"""

from unittest.mock import MagicMock

import pytest
import requests

from errors import ConflictError, ValidationError
from workflows.caption_batch import CaptionedImage
from workflows.product_publishing import (
    BULK_DELETE_CONFIRMATION,
    ProductCache,
    ProductPublisher,
)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def publisher(client, sleeps):
    return ProductPublisher(client, delay=0.1, sleep=sleeps.append)


def test_bulk_delete_wrong_phrase_makes_no_calls(publisher, client):
    with pytest.raises(ValidationError):
        publisher.bulk_delete(["A", "B"], "delete all listings")
    client.delete_product.assert_not_called()


def test_bulk_delete_records_failures_and_continues(publisher, client, sleeps):
    def delete(product_id):
        if product_id == "B":
            raise requests.ConnectionError("connection reset")
        return None

    client.delete_product.side_effect = delete
    summary = publisher.bulk_delete(["A", "B", "C"], BULK_DELETE_CONFIRMATION)

    result = summary.to_dict()
    assert result["totalRequested"] == 3
    assert result["deleted"] == 2
    assert result["failed"] == 1
    assert [r["productId"] for r in result["results"]] == ["A", "B", "C"]
    assert "connection reset" in result["results"][1]["error"]
    assert [call.args[0] for call in client.delete_product.call_args_list] == ["A", "B", "C"]
    assert sleeps == [0.1, 0.1]


def test_bulk_delete_removes_from_cache(publisher, client):
    publisher.cache.add({"id": "A"})
    publisher.bulk_delete(["A"], BULK_DELETE_CONFIRMATION)
    assert publisher.cache.get("A") is None


def test_bulk_publish_records_conflicts(publisher, client):
    client.publish_to_shop.side_effect = [None, ConflictError("Product already published to this shop.")]
    summary = publisher.bulk_publish(["A", "B"], shop_id="9001")

    assert summary.succeeded == 1
    assert summary.failed == 1
    assert summary.to_dict()["published"] == 1
    client.publish_to_shop.assert_any_call("A", "9001")


def test_create_with_publish_marks_published(publisher, client):
    client.create_product.return_value = {"id": "p1"}
    product = publisher.create_with_publish({"title": "Wave"})
    assert product["published"] is True
    assert publisher.cache.get("p1") is product


def test_create_with_publish_keeps_product_when_publish_fails(publisher, client):
    client.create_product.return_value = {"id": "p1"}
    client.publish_to_shop.side_effect = ConflictError("Product already published to this shop.")

    product = publisher.create_with_publish({"title": "Wave"})

    assert product["id"] == "p1"
    assert product["published"] is False
    assert "manual publishing required" in product["publishNote"]


def test_create_products_uploads_then_creates(publisher, client):
    client.upload_image.return_value = {"id": "upload-1"}
    client.create_product.side_effect = [{"id": "p1"}, RuntimeError("blueprint gone")]
    images = [
        CaptionedImage(id="img1", original="u1", processed="data:image/jpeg;base64,QUJD",
                       caption="[Waves multitasking poorly]", title="T", filename="wave_1"),
        CaptionedImage(id="img2", original="u2", processed="data:image/jpeg;base64,QUJD",
                       caption="[Ocean taking a personal day]", title="T", filename="wave_2"),
    ]

    summary = publisher.create_products(images, context="office")

    assert summary.to_dict()["created"] == 1
    assert summary.results[0].product_id == "p1"
    assert summary.results[1].image_id == "img2"
    assert not summary.results[1].success
    client.upload_image.assert_any_call("data:image/jpeg;base64,QUJD", "wave_1.jpg")
    draft = client.create_product.call_args_list[0].args[0]
    assert draft.title.startswith("Waves multitasking poorly - Office Wall Art")


def test_cache_refresh_merges_known_products():
    cache = ProductCache()
    cache.add({"id": "A", "title": "old"})
    updated = cache.refresh([{"id": "A", "title": "new"}, {"id": "Z"}])
    assert updated == 1
    assert cache.get("A")["title"] == "new"
    assert len(cache) == 1
