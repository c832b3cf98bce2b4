"""
Summary generation: classify, persist, call the summarization endpoint, finalize.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Optional

from core.entities import Post, SummaryRecord
from core.errors import NoContentError, PersistenceError, SummaryGenerationError
from core.schemas import build_request, parse_completion
from processing.classifier import classify
from services.context import AppContext
from services.retry import with_retry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an AI assistant specializing in summarizing content. Your task is to "
    "provide clear, informative summaries that capture the key points and main "
    "ideas of the content."
)

SOURCE_NAMES = {
    "reddit": "Reddit",
    "twitter": "Twitter",
    "linkedin": "LinkedIn",
}


@dataclass(frozen=True)
class SummaryOptions:
    max_length: int = 200
    style: Literal["concise", "detailed"] = "concise"


def build_prompt(post: Post, options: SummaryOptions) -> str:
    """Deterministic prompt for a single post."""
    content = post.content or post.title
    source = SOURCE_NAMES.get(post.source, post.source)

    return "\n".join([
        "Please provide a clear and informative summary of the following content:",
        "",
        f"Title: {post.title or ''}",
        f"Content: {content}",
        f"Source: {source} - {post.source_label}",
        "",
        "Guidelines:",
        f"- Aim for a {options.max_length}-word {options.style} summary",
        "- Focus on key points and main ideas",
        "- Maintain original context and meaning",
        "- Use clear, concise language",
        "",
        "Please provide the summary in a single paragraph.",
    ])


class SummaryGenerator:
    """
    Drives one post through the summary record lifecycle.

    Every call ends with the record either ``completed`` or ``failed``; the
    only exception is the process dying between receiving the summary and
    persisting it.
    """

    def __init__(
        self,
        context: AppContext,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.context = context
        self.config = context.config
        self.db = context.database
        self.sleep = sleep

    @property
    def default_options(self) -> SummaryOptions:
        return SummaryOptions(
            max_length=self.config.SUMMARY_MAX_LENGTH,
            style=self.config.SUMMARY_STYLE,
        )

    async def _start_record(self, post: Post, user_id: str, record_id: Optional[int]) -> SummaryRecord:
        if record_id is not None:
            return await self.db.mark_processing(record_id, user_id, post.id)
        return await self.db.create_or_reuse_summary(user_id, post.id, classify(post))

    async def _record_failure(self, record_id: int, error: Exception) -> None:
        try:
            await self.db.mark_failed(record_id, str(error))
        except PersistenceError:
            logger.exception(f"Could not persist failed state for summary {record_id}")

    async def _request_summary(self, access_token: str, prompt: str) -> str:
        payload = build_request(self.config.SUMMARY_MODEL, SYSTEM_PROMPT, prompt).model_dump()

        async with self.context.create_api_client(access_token) as client:
            data = await with_retry(
                lambda: client.post("", payload),
                max_attempts=self.config.MAX_RETRIES,
                base_delay=self.config.RETRY_BASE_DELAY,
                timeout=self.config.REQUEST_TIMEOUT,
                sleep=self.sleep,
            )

        return parse_completion(data)

    async def generate(
        self,
        post: Post,
        user_id: str,
        options: Optional[SummaryOptions] = None,
        record_id: Optional[int] = None,
    ) -> str:
        """
        Generate and persist a summary for ``post``.

        Raises:
            NoContentError: the post has neither title nor content
            AuthorizationError: no access token could be obtained
            SummaryGenerationError: any later failure; the record is marked failed
        """
        if not post.has_content:
            raise NoContentError()

        options = options or self.default_options
        start = time.perf_counter()
        logger.info(f"Starting summary generation for post {post.id}")

        access_token = await self.context.credentials.get_access_token()

        try:
            record = await self._start_record(post, user_id, record_id)
        except PersistenceError as e:
            logger.error(f"Failed to create summary record for post {post.id}: {e}")
            raise SummaryGenerationError(e) from e

        try:
            summary = await self._request_summary(access_token, build_prompt(post, options))
        except Exception as e:
            logger.error(f"Error generating summary {record.id} for post {post.id}: {e}")
            await self._record_failure(record.id, e)
            raise SummaryGenerationError(e, record.id) from e

        try:
            await self.db.mark_completed(record.id, summary)
        except PersistenceError as e:
            logger.error(f"Failed to store completed summary {record.id}: {e}")
            await self._record_failure(record.id, e)
            raise SummaryGenerationError(e, record.id) from e

        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"Summary {record.id} completed for post {post.id} ({latency_ms}ms)")
        return summary

    async def get_or_generate(
        self,
        post: Post,
        user_id: str,
        refresh: bool = False,
        options: Optional[SummaryOptions] = None,
    ) -> str:
        """Return the stored completed summary unless a refresh is requested."""
        if not refresh:
            existing = await self.db.get_completed_summary(user_id, post.id)
            if existing and existing.content:
                return existing.content

        return await self.generate(post, user_id, options=options)
