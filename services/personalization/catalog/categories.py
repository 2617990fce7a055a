"""
Static category catalog for the home page rails.

Each category defines:
  - id (slug), title, emoji
  - query: space-separated keywords the inventory layer searches with

The catalog order is the curated, unpersonalized rail order. Ranking falls
back to exactly this order whenever personalization is off or fails.

display_name() / category_emoji() cover category ids that are not in the
catalog (synthesized rails for categories the user touched elsewhere).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class CategoryDescriptor:
    """A rail candidate, curated or synthesized."""
    id: str
    title: str
    emoji: str
    query: str
    score: float = 0.0
    is_generated: bool = False
    reason: str | None = None

    def with_score(self, score: float) -> "CategoryDescriptor":
        return replace(self, score=score)

    def keywords(self) -> frozenset[str]:
        """Lowercased tokens of the id and query, used for representation checks."""
        return frozenset(tokenize(self.id) + tokenize(self.query))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "emoji": self.emoji,
            "query": self.query,
            "score": self.score,
            "isGenerated": self.is_generated,
            "reason": self.reason,
        }


_TOKEN_RE = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def slugify(text: str) -> str:
    return "-".join(tokenize(text))


def represents(category: CategoryDescriptor, term: str) -> bool:
    """
    True when `category` already covers `term` (a category key, query or venue).

    Covered means the term's slug equals the category's id, title or query
    slug, or every token of the term is one of the category's keywords.
    """
    tokens = tokenize(term)
    if not tokens:
        return False
    slug = "-".join(tokens)
    if slug in (category.id, slugify(category.title), slugify(category.query)):
        return True
    return set(tokens) <= category.keywords()


def category_affinity(category: CategoryDescriptor, scores: Mapping[str, float]) -> float:
    """
    Affinity a curated category earns from a profile's category scores.

    The exact id's score, or the best score among keys the category
    represents ("music" counts toward music-concerts).
    """
    credited = [scores.get(category.id, 0.0)]
    credited.extend(
        score for key, score in scores.items()
        if key != category.id and represents(category, key)
    )
    return max(credited)


# ---------------------------------------------------------------------------
# Curated catalog
# ---------------------------------------------------------------------------

DEFAULT_CATEGORIES: tuple[CategoryDescriptor, ...] = (
    # Music & Entertainment
    CategoryDescriptor("music-concerts", "Music & Concerts", "🎵", "concerts music live shows"),
    CategoryDescriptor("nightlife-dj", "Nightlife & DJ Sets", "🌃", "nightlife dj club party"),
    CategoryDescriptor("comedy-improv", "Comedy & Improv", "😂", "comedy improv standup"),
    CategoryDescriptor("theatre-dance", "Theatre & Dance", "🎭", "theatre dance performance"),
    # Food & Culture
    CategoryDescriptor("food-drink", "Food & Drink (Pop-ups, Tastings)", "🍽️", "food popup tasting wine beer"),
    CategoryDescriptor("arts-exhibits", "Arts & Exhibits", "🎨", "art gallery exhibit museum"),
    CategoryDescriptor("film-screenings", "Film & Screenings", "🎬", "film movie screening cinema"),
    CategoryDescriptor("markets-popups", "Markets & Pop-ups", "🛍️", "market popup vendor fair"),
    # Active & Wellness
    CategoryDescriptor("sports-fitness", "Sports & Fitness", "🏃", "sports fitness workout gym"),
    CategoryDescriptor("outdoors-nature", "Outdoors & Nature", "🌲", "outdoor hiking nature park"),
    CategoryDescriptor("wellness-mindfulness", "Wellness & Mindfulness", "🧘", "wellness yoga meditation mindfulness"),
    # Community & Learning
    CategoryDescriptor("workshops-classes", "Workshops & Classes", "📚", "workshop class education learning"),
    CategoryDescriptor("tech-startups", "Tech & Startups", "💻", "tech startup meetup networking"),
    # Special
    CategoryDescriptor("family-kids", "Family & Kids", "👨‍👩‍👧‍👦", "family kids children activities"),
    CategoryDescriptor("date-night", "Date Night Ideas", "💕", "date night romantic couples"),
    CategoryDescriptor("late-night", "Late Night (11pm–4am)", "🌙", "late night after hours club"),
    CategoryDescriptor("neighborhood", "Neighborhood Hotspots", "📍", "local neighborhood community events"),
    CategoryDescriptor("halloween", "Halloween Events", "🎃", "halloween costume party spooky"),
)


# ---------------------------------------------------------------------------
# Display lookups for uncatalogued category ids
# ---------------------------------------------------------------------------

_DISPLAY_NAMES: dict[str, str] = {
    "music": "Music",
    "concert": "Concerts",
    "comedy": "Comedy",
    "theatre": "Theatre",
    "sports": "Sports",
    "food": "Food & Drink",
    "art": "Arts",
    "tech": "Tech Events",
    "nightlife": "Nightlife",
    "family": "Family Events",
    "film": "Film",
    "markets": "Markets",
    "outdoors": "Outdoors",
    "wellness": "Wellness",
    "workshops": "Workshops",
}

# Checked in order; the first key contained in the id wins
_EMOJIS: tuple[tuple[str, str], ...] = (
    ("music", "🎵"),
    ("concert", "🎸"),
    ("comedy", "😂"),
    ("theatre", "🎭"),
    ("sports", "🏃"),
    ("food", "🍽️"),
    ("art", "🎨"),
    ("tech", "💻"),
    ("nightlife", "🌃"),
    ("family", "👨‍👩‍👧‍👦"),
    ("film", "🎬"),
    ("market", "🛍️"),
    ("outdoor", "🌲"),
    ("wellness", "🧘"),
    ("workshop", "📚"),
    ("halloween", "🎃"),
)

_FALLBACK_EMOJI = "⭐"


def display_name(category_id: str) -> str:
    """Human-readable title for a category id."""
    key = category_id.lower()
    if key in _DISPLAY_NAMES:
        return _DISPLAY_NAMES[key]
    return " ".join(word.capitalize() for word in tokenize(category_id)) or category_id


def category_emoji(category_id: str) -> str:
    """Emoji for a category id, by substring match."""
    key = category_id.lower()
    for needle, emoji in _EMOJIS:
        if needle in key:
            return emoji
    return _FALLBACK_EMOJI
