from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any


@dataclass(frozen=True)
class Post:
    """
    A saved post handed to the core by a platform adapter.
    """
    id: str
    title: Optional[str] = None
    content: Optional[str] = None
    topic_hint: Optional[str] = None  # subreddit, community or handle
    source: str = "reddit"
    url: str = ""
    author: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return bool((self.title or "").strip() or (self.content or "").strip())

    @property
    def source_label(self) -> str:
        """Short origin label, e.g. ``r/python`` or ``@jack``."""
        hint = self.topic_hint or ""
        if self.source == "reddit":
            return f"r/{hint}"
        if self.source == "twitter":
            return f"@{hint}"
        return hint or self.source


class SummaryStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SummaryStatus.PROCESSING


@dataclass(frozen=True)
class SummaryRecord:
    """
    Persisted lifecycle of one summarization attempt for one post.
    """
    id: int
    user_id: str
    post_id: str
    status: SummaryStatus
    category: str
    content: str
    error_message: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SummaryRecord":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            post_id=row["post_id"],
            status=SummaryStatus(row["status"]),
            category=row["category"],
            content=row["content"] or "",
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


@dataclass(frozen=True)
class DigestPost:
    title: str
    summary: str
    source: str
    url: str


@dataclass
class DigestCategory:
    name: str
    posts: List[DigestPost] = field(default_factory=list)


@dataclass(frozen=True)
class Digest:
    """
    Multi-category grouping of summarized posts. Built on demand.
    """
    categories: List[DigestCategory]
    generated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [
                {
                    "name": category.name,
                    "posts": [post.__dict__ for post in category.posts],
                }
                for category in self.categories
            ],
            "generated_at": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Digest":
        return cls(
            categories=[
                DigestCategory(
                    name=category["name"],
                    posts=[DigestPost(**post) for post in category.get("posts", [])],
                )
                for category in data.get("categories", [])
            ],
            generated_at=datetime.fromisoformat(data["generated_at"]),
        )
