#!/usr/bin/env python3
"""
Tests for the caption batch workflow.
"""

from unittest.mock import MagicMock, patch

import pytest

from captions import CaptionSelector
from errors import NotFoundError, ValidationError
from image_compositor import CompositeOptions
from pexels_client import SourceImage
from workflows.caption_batch import BatchConfig, approved, process_batch, review


def _sources(urls):
    return [SourceImage(id=str(n), url=url, width=64, height=48) for n, url in enumerate(urls)]


def _config(**overrides):
    selector = CaptionSelector(captions=["[One]", "[Two]", "[Three]"], titles=["Wave Art"], sequential=True)
    return BatchConfig(options=CompositeOptions(120, 90), selector=selector, **overrides)


def test_batch_processes_in_order(jpeg_data_url):
    results = process_batch(_sources([jpeg_data_url] * 3), _config())

    assert [item.id for item in results] == ["0", "1", "2"]
    assert [item.caption for item in results] == ["[One]", "[Two]", "[Three]"]
    assert all(item.processed.startswith("data:image/jpeg") for item in results)
    assert not any(item.degraded for item in results)
    assert results[1].filename == "wave-art_2"


def test_batch_keeps_failed_images_as_passthrough(jpeg_data_url, tmp_path):
    broken = str(tmp_path / "gone.jpg")
    results = process_batch(_sources([jpeg_data_url, broken, jpeg_data_url]), _config())

    assert len(results) == 3
    assert results[1].degraded
    assert results[1].processed == broken
    assert results[1].caption == "[Two]"
    assert not results[2].degraded


def test_batch_survives_unexpected_compositor_error(jpeg_data_url):
    with patch("workflows.caption_batch.compose", side_effect=RuntimeError("boom")):
        results = process_batch(_sources([jpeg_data_url]), _config())
    assert results[0].degraded
    assert results[0].processed == jpeg_data_url


def test_batch_reports_progress_and_respects_target(jpeg_data_url):
    calls = []
    results = process_batch(
        _sources([jpeg_data_url] * 4),
        _config(target_count=2),
        lambda done, total, item: calls.append((done, total, item.id)),
    )
    assert len(results) == 2
    assert calls == [(1, 2, "0"), (2, 2, "1")]


def test_review_updates_status_and_caption(jpeg_data_url):
    batch = process_batch(_sources([jpeg_data_url] * 2), _config())

    updated = review(batch, "1", status="approved", caption="[Ocean needing coffee first]")

    assert batch[1] is updated
    assert updated.status == "approved"
    assert updated.edited
    assert batch[0].status == "pending"
    assert approved(batch) == [updated]


def test_review_rejects_bad_status_and_unknown_id(jpeg_data_url):
    batch = process_batch(_sources([jpeg_data_url]), _config())
    with pytest.raises(ValidationError):
        review(batch, "0", status="maybe")
    with pytest.raises(NotFoundError):
        review(batch, "42", status="approved")


def test_batch_survives_selector_error(jpeg_data_url):
    selector = MagicMock()
    selector.select.side_effect = [("[One]", "Wave Art"), IndexError("pool exhausted"), ("[Three]", "Wave Art")]
    config = BatchConfig(options=CompositeOptions(120, 90), selector=selector)

    results = process_batch(_sources([jpeg_data_url] * 3), config)

    assert [item.id for item in results] == ["0", "1", "2"]
    assert results[1].degraded
    assert results[1].processed == jpeg_data_url
    assert not results[2].degraded


def test_created_at_is_utc_with_z_suffix(jpeg_data_url):
    item = process_batch(_sources([jpeg_data_url]), _config())[0]
    assert item.created_at.endswith("Z")
    assert item.to_dict()["createdAt"] == item.created_at
