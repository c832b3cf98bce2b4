"""
Builds multi-category digests from saved posts.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Dict, Iterable, List, TypeVar

from core.entities import Digest, DigestCategory, DigestPost, Post
from processing.classifier import classify
from processing.summarizer import SummaryGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _gather_all(aws: Iterable[Awaitable[T]]) -> List[T]:
    """
    Await everything, then raise the first failure.
    Siblings of a failed call still run to completion so their records are finalized.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def group_by_category(posts: List[Post]) -> Dict[str, List[Post]]:
    """Group posts by category; input order is kept within each group."""
    groups: Dict[str, List[Post]] = {}
    for post in posts:
        groups.setdefault(classify(post), []).append(post)
    return groups


class DigestBuilder:
    """
    Summarizes every post and groups the results by category.

    Not fault-isolating: one failed summary fails the whole build. Each post's
    summary record still ends up completed or failed on its own.
    """

    def __init__(self, generator: SummaryGenerator):
        self.generator = generator

    async def _build_category(self, name: str, posts: List[Post], user_id: str) -> DigestCategory:
        summaries = await _gather_all(
            self.generator.generate(post, user_id) for post in posts
        )
        return DigestCategory(
            name=name,
            posts=[
                DigestPost(
                    title=post.title or "Untitled Post",
                    summary=summary,
                    source=post.source_label,
                    url=post.url,
                )
                for post, summary in zip(posts, summaries)
            ],
        )

    async def build(self, posts: List[Post], user_id: str) -> Digest:
        groups = group_by_category(posts)
        logger.info(f"Building digest for {len(posts)} posts in {len(groups)} categories")

        categories = await _gather_all(
            self._build_category(name, group, user_id) for name, group in groups.items()
        )

        # sorted() is stable, so ties keep first-appearance order
        ordered = sorted(categories, key=lambda c: len(c.posts), reverse=True)
        return Digest(categories=ordered, generated_at=datetime.now(timezone.utc))

    async def build_and_store(self, posts: List[Post], user_id: str) -> Digest:
        digest = await self.build(posts, user_id)
        digest_id = await self.generator.db.store_digest(user_id, digest)
        logger.info(f"Stored digest {digest_id} for user {user_id}")
        return digest
