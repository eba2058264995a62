#!/usr/bin/env python3
"""
Tests for caption selection and listing copy.
"""

import random

import pytest

from captions import (
    CAPTIONS,
    MAX_TAGS,
    SEO_TITLES,
    CaptionSelector,
    keywords_to_tags,
    listing_copy,
    seo_filename,
)


def test_sequential_selector_cycles_pools():
    selector = CaptionSelector(captions=["a", "b"], titles=["T"], sequential=True)
    assert [selector.select(i) for i in range(3)] == [("a", "T"), ("b", "T"), ("a", "T")]


def test_seeded_selector_is_reproducible():
    first = CaptionSelector(rng=random.Random(7))
    second = CaptionSelector(rng=random.Random(7))
    picks = [first.select(i) for i in range(5)]
    assert picks == [second.select(i) for i in range(5)]
    assert all(caption in CAPTIONS and title in SEO_TITLES for caption, title in picks)


def test_empty_pool_rejected():
    with pytest.raises(ValueError):
        CaptionSelector(captions=[])


def test_seo_filename_slugs_title():
    name = seo_filename("Ocean Wave Wall Art - Modern Coastal Print for Home & Office", 0)
    assert name == "ocean-wave-wall-art-modern-coastal-print-for-home-office_1"


def test_keywords_to_tags_packs_words():
    tags = keywords_to_tags("ocean, wave, art print, coastal home decor gift")
    assert tags == ["ocean wave art print", "coastal home decor", "gift"]
    assert all(len(tag) <= 20 for tag in tags)


def test_keywords_to_tags_empty():
    assert keywords_to_tags("") == []


def test_listing_copy_for_context():
    copy = listing_copy("[Ocean needing coffee first]", "kitchen")
    assert copy.title.startswith("Ocean needing coffee first - Kitchen Wall Art")
    assert "Ocean needing coffee first" in copy.description
    assert copy.price_cents == 2299
    assert len(copy.tags) <= MAX_TAGS
    assert len(copy.tags) == len(set(copy.tags))


def test_listing_copy_unknown_context_falls_back():
    assert listing_copy("[Waves]", "garage").price_cents == 2699


def test_keywords_to_tags_drops_punctuation_and_repeats():
    assert keywords_to_tags("Waves, waves! multitasking poorly") == ["waves multitasking", "poorly"]


def test_keywords_to_tags_stops_at_max_tags():
    assert keywords_to_tags("a b c", max_tags=1, max_len=3) == ["a b"]
