"""
Keyword-based topic classification for saved posts.
"""
from typing import Dict, Iterable, Tuple

from core.entities import Post

OTHER = "Other"

# Checked in declaration order; the first category with a matching keyword wins.
CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "Technology & Programming": (
        "programming", "webdev", "javascript", "typescript", "react", "node",
        "technology", "coding", "developer", "software", "tech",
    ),
    "Investing & Crypto": (
        "bitcoin", "cryptocurrency", "investing", "stocks", "wallstreetbets",
        "finance", "crypto", "trading",
    ),
    "Science & Education": (
        "science", "space", "physics", "biology", "chemistry", "education",
        "learning", "research", "study",
    ),
    "Entertainment & Gaming": (
        "gaming", "games", "pcgaming", "nintendo", "playstation", "xbox",
        "entertainment", "movies", "television",
    ),
    OTHER: (),
}

ALL_CATEGORIES = tuple(CATEGORIES)


def keyword_match(text: str, keywords: Iterable[str]) -> bool:
    text = text.lower()
    return any(k in text for k in keywords)


def classify(post: Post) -> str:
    """
    Map a post to one of ALL_CATEGORIES.

    Matches are case-insensitive substrings over the topic hint, title and
    content. Posts matching nothing fall through to ``Other``.
    """
    text = " ".join((post.topic_hint or "", post.title or "", post.content or ""))

    for category, keywords in CATEGORIES.items():
        if keyword_match(text, keywords):
            return category

    return OTHER
