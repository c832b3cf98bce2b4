"""
Convert raw platform payloads of saved posts into Post objects.
"""
import logging
from typing import Any, Dict, List

from core.entities import Post

logger = logging.getLogger(__name__)

SOURCES = ("reddit", "twitter", "linkedin")


def post_from_reddit(data: Dict[str, Any]) -> Post:
    """One ``children[].data`` entry from a Reddit saved listing (post or comment)."""
    permalink = data.get("permalink", "")
    return Post(
        id=str(data["id"]),
        title=data.get("title") or data.get("link_title"),
        content=data.get("selftext") or data.get("body") or data.get("url") or "",
        topic_hint=data.get("subreddit"),
        source="reddit",
        url=data.get("url") or (f"https://reddit.com{permalink}" if permalink else ""),
        author=data.get("author"),
    )


def posts_from_reddit_listing(listing: Dict[str, Any]) -> List[Post]:
    children = (listing.get("data") or {}).get("children")
    if children is None:
        raise ValueError("Invalid Reddit listing format")
    return [post_from_reddit(child["data"]) for child in children if child.get("data")]


def posts_from_twitter_bookmarks(payload: Dict[str, Any]) -> List[Post]:
    """A Twitter v2 bookmarks response with ``expansions=author_id``."""
    users = {
        user["id"]: user
        for user in (payload.get("includes") or {}).get("users", [])
    }

    posts = []
    for tweet in payload.get("data") or []:
        author = users.get(tweet.get("author_id"))
        if author is None:
            logger.warning(f"Skipping tweet {tweet.get('id')} with unknown author")
            continue
        posts.append(Post(
            id=str(tweet["id"]),
            title=None,
            content=tweet.get("text", ""),
            topic_hint=author["username"],
            source="twitter",
            url=f"https://twitter.com/{author['username']}/status/{tweet['id']}",
            author=author.get("name"),
        ))
    return posts


def posts_from_linkedin(items: List[Dict[str, Any]]) -> List[Post]:
    return [
        Post(
            id=str(item["id"]),
            title=item.get("title"),
            content=item.get("content", ""),
            topic_hint=item.get("author"),
            source="linkedin",
            url=item.get("url", ""),
            author=item.get("author"),
        )
        for item in items
    ]


def normalize(source: str, payload: Any) -> List[Post]:
    if source == "reddit":
        return posts_from_reddit_listing(payload)
    if source == "twitter":
        return posts_from_twitter_bookmarks(payload)
    if source == "linkedin":
        return posts_from_linkedin(payload)
    raise ValueError(f"Unknown source: {source}")
