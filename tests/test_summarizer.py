"""Tests for summary generation and the summary record lifecycle."""
import asyncio

import httpx
import pytest

from conftest import completion
from core.entities import Post, SummaryStatus
from core.errors import (
    AuthorizationError,
    InvalidResponseError,
    NoContentError,
    PersistenceError,
    RetryExhaustedError,
    SummaryGenerationError,
)
from processing.summarizer import SYSTEM_PROMPT, SummaryGenerator, SummaryOptions, build_prompt
from services.credentials import CredentialProvider, StaticCredentialProvider


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class CountingCredentials(CredentialProvider):
    def __init__(self):
        self.calls = 0

    async def get_access_token(self) -> str:
        self.calls += 1
        return f"token-{self.calls}"


async def records_for(context, post_id, user_id="user-1"):
    return await context.database.get_summaries_for_post(user_id, post_id)


@pytest.mark.asyncio
async def test_success_completes_record(context, endpoint, post):
    endpoint.queue(completion("X"))

    result = await SummaryGenerator(context).generate(post, "user-1")

    assert result == "X"
    [record] = await records_for(context, post.id)
    assert record.status is SummaryStatus.COMPLETED
    assert record.content == "X"
    assert record.category == "Technology & Programming"
    assert record.error_message is None


@pytest.mark.asyncio
async def test_request_shape_and_headers(context, endpoint, post):
    await SummaryGenerator(context).generate(post, "user-1")

    [request] = endpoint.requests
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Bearer session-token"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Content-Type"] == "application/json"

    payload = endpoint.payloads[0]
    assert payload["model"] == context.config.SUMMARY_MODEL
    assert [m["role"] for m in payload["messages"]] == ["system", "user"]
    assert payload["messages"][0]["content"] == SYSTEM_PROMPT
    assert payload["messages"][1]["content"] == build_prompt(post, SummaryOptions())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"choices": []},
        {"id": "x"},
        completion(None),
        completion("   "),
        {"choices": "not-a-list"},
    ],
)
async def test_empty_response_fails_record(context, endpoint, post, body):
    endpoint.queue(body)

    with pytest.raises(SummaryGenerationError) as exc_info:
        await SummaryGenerator(context).generate(post, "user-1")

    assert str(exc_info.value).startswith("Summary generation failed:")
    assert isinstance(exc_info.value.__cause__, InvalidResponseError)

    [record] = await records_for(context, post.id)
    assert record.status is SummaryStatus.FAILED
    assert record.error_message
    assert record.content == ""
    assert exc_info.value.record_id == record.id


@pytest.mark.asyncio
async def test_post_without_content_fails_fast(context, endpoint):
    empty = Post(id="empty", title="  ", content="", topic_hint="programming")

    with pytest.raises(NoContentError):
        await SummaryGenerator(context).generate(empty, "user-1")

    assert endpoint.requests == []
    assert await records_for(context, "empty") == []


@pytest.mark.asyncio
async def test_repeat_generation_reuses_record(context, endpoint, post):
    generator = SummaryGenerator(context)

    await generator.generate(post, "user-1")
    [first] = await records_for(context, post.id)

    endpoint.queue(completion("Second take."))
    assert await generator.generate(post, "user-1") == "Second take."
    [second] = await records_for(context, post.id)

    assert second.id == first.id
    assert second.status is SummaryStatus.COMPLETED
    assert second.content == "Second take."
    assert second.updated_at > first.updated_at


@pytest.mark.asyncio
async def test_known_record_id_is_reentered(context, endpoint, post):
    generator = SummaryGenerator(context)
    endpoint.queue(completion(""))
    with pytest.raises(SummaryGenerationError):
        await generator.generate(post, "user-1")
    [failed] = await records_for(context, post.id)

    result = await generator.generate(post, "user-1", record_id=failed.id)

    assert result == "A short summary."
    [record] = await records_for(context, post.id)
    assert record.id == failed.id
    assert record.status is SummaryStatus.COMPLETED
    assert record.error_message is None


@pytest.mark.asyncio
async def test_record_id_of_another_post_is_rejected(context, endpoint, post):
    generator = SummaryGenerator(context)
    other = Post(id="other", title="ETF fees", content="Index funds", topic_hint="investing")
    await generator.generate(other, "user-1")
    [other_record] = await records_for(context, "other")

    with pytest.raises(SummaryGenerationError) as exc_info:
        await generator.generate(post, "user-1", record_id=other_record.id)

    assert isinstance(exc_info.value.__cause__, PersistenceError)
    assert len(endpoint.requests) == 1
    [unchanged] = await records_for(context, "other")
    assert unchanged.category == "Investing & Crypto"
    assert unchanged.status is SummaryStatus.COMPLETED
    assert await records_for(context, post.id) == []


@pytest.mark.asyncio
async def test_concurrent_generation_shares_one_record(context, endpoint, post):
    generator = SummaryGenerator(context)

    results = await asyncio.gather(
        generator.generate(post, "user-1"),
        generator.generate(post, "user-1"),
    )

    assert results == ["A short summary.", "A short summary."]
    [record] = await records_for(context, post.id)
    assert record.status is SummaryStatus.COMPLETED
    assert record.content == "A short summary."


@pytest.mark.asyncio
async def test_server_errors_are_retried_with_backoff(context, endpoint, post):
    context.config.RETRY_BASE_DELAY = 0.5
    sleep = RecordingSleep()
    endpoint.queue(
        httpx.Response(500, text="busy"),
        httpx.Response(500, text="busy"),
        completion("Third time lucky."),
    )

    result = await SummaryGenerator(context, sleep=sleep).generate(post, "user-1")

    assert result == "Third time lucky."
    assert len(endpoint.requests) == 3
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retry_exhaustion_fails_record(context, endpoint, post):
    endpoint.queue(*[httpx.Response(502, text="bad gateway")] * 3)

    with pytest.raises(SummaryGenerationError) as exc_info:
        await SummaryGenerator(context).generate(post, "user-1")

    assert isinstance(exc_info.value.__cause__, RetryExhaustedError)
    assert len(endpoint.requests) == 3
    [record] = await records_for(context, post.id)
    assert record.status is SummaryStatus.FAILED
    assert "Failed after 3 attempts" in record.error_message


@pytest.mark.asyncio
async def test_unauthorized_response_is_not_retried(context, endpoint, post):
    endpoint.queue(
        httpx.Response(401, json={"error": "Invalid authorization token", "type": "authorization"})
    )

    with pytest.raises(SummaryGenerationError):
        await SummaryGenerator(context).generate(post, "user-1")

    assert len(endpoint.requests) == 1
    [record] = await records_for(context, post.id)
    assert record.status is SummaryStatus.FAILED
    assert "401" in record.error_message


@pytest.mark.asyncio
async def test_credentials_are_fetched_per_call(context, endpoint, post):
    credentials = CountingCredentials()
    context.credentials = credentials
    generator = SummaryGenerator(context)

    await generator.generate(post, "user-1")
    await generator.generate(post, "user-1")

    assert credentials.calls == 2
    assert [r.headers["Authorization"] for r in endpoint.requests] == [
        "Bearer token-1",
        "Bearer token-2",
    ]


@pytest.mark.asyncio
async def test_missing_session_creates_no_record(context, endpoint, post):
    context.credentials = StaticCredentialProvider(None)

    with pytest.raises(AuthorizationError):
        await SummaryGenerator(context).generate(post, "user-1")

    assert endpoint.requests == []
    assert await records_for(context, post.id) == []


@pytest.mark.asyncio
async def test_completion_write_failure_marks_record_failed(context, endpoint, post, monkeypatch):
    async def broken_mark_completed(record_id, content):
        raise PersistenceError("disk full")

    monkeypatch.setattr(context.database, "mark_completed", broken_mark_completed)

    with pytest.raises(SummaryGenerationError) as exc_info:
        await SummaryGenerator(context).generate(post, "user-1")

    assert "disk full" in str(exc_info.value)
    [record] = await records_for(context, post.id)
    assert record.status is SummaryStatus.FAILED
    assert record.error_message == "disk full"


@pytest.mark.asyncio
async def test_failure_to_record_failure_keeps_original_error(context, endpoint, post, monkeypatch):
    async def broken_mark_failed(record_id, message):
        raise PersistenceError("database locked")

    monkeypatch.setattr(context.database, "mark_failed", broken_mark_failed)
    endpoint.queue({"choices": []})

    with pytest.raises(SummaryGenerationError) as exc_info:
        await SummaryGenerator(context).generate(post, "user-1")

    assert isinstance(exc_info.value.__cause__, InvalidResponseError)


@pytest.mark.asyncio
async def test_get_or_generate_prefers_stored_summary(context, endpoint, post):
    generator = SummaryGenerator(context)
    await generator.generate(post, "user-1")

    assert await generator.get_or_generate(post, "user-1") == "A short summary."
    assert len(endpoint.requests) == 1

    endpoint.queue(completion("Fresh."))
    assert await generator.get_or_generate(post, "user-1", refresh=True) == "Fresh."
    assert len(endpoint.requests) == 2


def test_prompt_falls_back_to_title(post):
    title_only = Post(id="t", title="Just a title", topic_hint="python")
    prompt = build_prompt(title_only, SummaryOptions(max_length=120, style="detailed"))

    assert "Title: Just a title" in prompt
    assert "Content: Just a title" in prompt
    assert "Source: Reddit - r/python" in prompt
    assert "120-word detailed summary" in prompt
    assert prompt.endswith("Please provide the summary in a single paragraph.")


def test_prompt_is_deterministic(post):
    options = SummaryOptions()
    assert build_prompt(post, options) == build_prompt(post, options)
    assert "200-word concise summary" in build_prompt(post, options)


def test_prompt_names_twitter_source():
    tweet = Post(id="1", content="Shipping today", topic_hint="jack", source="twitter")
    assert "Source: Twitter - @jack" in build_prompt(tweet, SummaryOptions())
