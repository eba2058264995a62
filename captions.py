"""
Caption and listing copy pools.

Captions are paired with images by CaptionSelector; listing copy (title,
description, tags, price) is built per caption for the room context the
product is aimed at.
"""

import random
import re
from dataclasses import dataclass
from typing import Optional

CAPTIONS = [
    "[Waves professionally procrastinating]",
    "[Ocean expertly winging it]",
    "[Water having Monday energy]",
    "[Waves multitasking poorly]",
    "[Ocean taking a personal day]",
    "[Waves overthinking everything]",
    "[Ocean having commitment issues]",
    "[Water procrastinating effectively]",
    "[Waves dealing with Monday]",
    "[Ocean needing coffee first]",
]

SEO_TITLES = [
    "Ocean Wave Wall Art - Modern Coastal Print for Home & Office",
    "Funny Ocean Wave Print - Quirky Coastal Wall Decor",
    "Calming Wave Art Poster - Therapeutic Beach House Decor",
    "Coastal Wave Photography Print - Minimalist Ocean Wall Art",
    "Office Humor Wave Poster - Work From Home Coastal Decor",
]

MAX_TITLE_LENGTH = 140
MAX_TAGS = 13
MAX_TAG_LENGTH = 20

# Room contexts: title/description templates, tags and base price (USD)
LISTING_CONTEXTS = {
    "bathroom": {
        "title": "{phrase} - Bathroom Wall Art | Ocean Wave Print",
        "description": (
            "Quirky ocean wave art featuring {phrase}. Perfect for adding personality to your bathroom. "
            "High-quality print that captures the humor of everyday moments by the sea."
        ),
        "tags": ["bathroom wall art", "funny ocean decor", "wave art print", "bathroom humor", "coastal decor"],
        "price": 19.99,
    },
    "office": {
        "title": "{phrase} - Office Wall Art | Motivational Wave Print",
        "description": (
            "Ocean wave art featuring {phrase} - the perfect addition to your workspace. "
            "Brings calming coastal energy to your office while adding a touch of humor to your day."
        ),
        "tags": ["office wall art", "office humor", "wave art print", "workspace decor", "coastal decor"],
        "price": 24.99,
    },
    "kitchen": {
        "title": "{phrase} - Kitchen Wall Art | Coastal Wave Print",
        "description": (
            "Start your day with this charming wave art. {phrase} brings ocean vibes to your kitchen space. "
            "Great for coffee nooks, breakfast areas, or anywhere you need a smile."
        ),
        "tags": ["kitchen wall art", "coffee nook decor", "wave art print", "coastal kitchen", "beach decor"],
        "price": 22.99,
    },
    "hallway": {
        "title": "{phrase} - Hallway Wall Art | Ocean Wave Gallery Print",
        "description": (
            "Transform your hallway with this engaging wave art. {phrase} creates an instant conversation "
            "starter while adding coastal charm to transitional spaces."
        ),
        "tags": ["hallway wall art", "gallery print", "wave art print", "entryway decor", "coastal decor"],
        "price": 21.99,
    },
    "bedroom": {
        "title": "{phrase} - Bedroom Wall Art | Calming Wave Print",
        "description": (
            "Peaceful ocean wave art for your personal space. {phrase} brings gentle coastal energy to "
            "bedrooms. Perfect for creating a relaxing atmosphere above your bed or dresser."
        ),
        "tags": ["bedroom wall art", "calming wall art", "wave art print", "relaxing decor", "coastal decor"],
        "price": 23.99,
    },
    "livingroom": {
        "title": "{phrase} - Living Room Wall Art | Modern Wave Print",
        "description": (
            "Coastal wave art that makes a statement. {phrase} adds personality to your living space with "
            "modern ocean vibes. Perfect for above sofas, mantels, or gallery walls."
        ),
        "tags": ["living room art", "statement wall art", "wave art print", "modern coastal", "ocean wall art"],
        "price": 26.99,
    },
}

DEFAULT_CONTEXT = "livingroom"


@dataclass
class ListingCopy:
    """Product copy sent with a Printify product draft."""
    title: str
    description: str
    tags: list[str]
    price_cents: int


class CaptionSelector:
    """
    Pairs captions and SEO titles with images.

    Random by default; pass rng=random.Random(seed) for reproducible picks, or
    sequential=True to pair by index.
    """

    def __init__(
        self,
        captions: Optional[list[str]] = None,
        titles: Optional[list[str]] = None,
        rng: Optional[random.Random] = None,
        sequential: bool = False,
    ):
        self.captions = list(CAPTIONS if captions is None else captions)
        self.titles = list(SEO_TITLES if titles is None else titles)
        if not self.captions:
            raise ValueError("Caption pool is empty")
        if not self.titles:
            raise ValueError("Title pool is empty")
        self.rng = rng or random.Random()
        self.sequential = sequential

    def select(self, index: int) -> tuple[str, str]:
        if self.sequential:
            return self.captions[index % len(self.captions)], self.titles[index % len(self.titles)]
        return self.rng.choice(self.captions), self.rng.choice(self.titles)


def seo_filename(title: str, index: int) -> str:
    """File-safe slug of a title with a 1-based index suffix."""
    slug = re.sub(r"[^a-z0-9\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return f"{slug}_{index + 1}"


def keywords_to_tags(keywords: str, max_tags: int = MAX_TAGS, max_len: int = MAX_TAG_LENGTH) -> list[str]:
    """
    Pack caption words into marketplace tags.

    Words are lowercased, stripped of punctuation and de-duplicated, then
    joined greedily while the tag stays within max_len characters. Packing
    stops at max_tags tags.
    """
    words = []
    for word in re.findall(r"[a-z0-9']+", (keywords or "").lower()):
        word = word[:max_len]
        if word not in words:
            words.append(word)

    tags = []
    for word in words:
        if tags and len(tags[-1]) + 1 + len(word) <= max_len:
            tags[-1] = f"{tags[-1]} {word}"
        elif len(tags) < max_tags:
            tags.append(word)
        else:
            break
    return tags


def listing_copy(caption: str, context: str = DEFAULT_CONTEXT) -> ListingCopy:
    """Build title, description, tags and price for a caption."""
    template = LISTING_CONTEXTS.get(context) or LISTING_CONTEXTS[DEFAULT_CONTEXT]
    phrase = re.sub(r"[\[\]]", "", caption).strip()

    tags = []
    for tag in template["tags"] + keywords_to_tags(phrase.lower()):
        if tag not in tags:
            tags.append(tag)

    return ListingCopy(
        title=template["title"].format(phrase=phrase)[:MAX_TITLE_LENGTH],
        description=template["description"].format(phrase=phrase),
        tags=tags[:MAX_TAGS],
        price_cents=int(round(template["price"] * 100)),
    )
