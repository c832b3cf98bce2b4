from __future__ import annotations

import json
import re
from typing import Any, Callable, List, Optional

import httpx
import pytest
import pytest_asyncio

from core.entities import Post
from services.config import Config
from services.context import AppContext, create_context

ENDPOINT = "https://edge.example.com/functions/v1/summarize"


def completion(content: Optional[str]) -> dict:
    return {
        "id": "cmpl-1",
        "model": "llama-3.1-sonar-large-128k-online",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


def summary_of_title(request: httpx.Request) -> httpx.Response:
    """Responder that echoes the post title back as the summary."""
    prompt = json.loads(request.content)["messages"][1]["content"]
    title = re.search(r"^Title: (.*)$", prompt, re.MULTILINE).group(1)
    return httpx.Response(200, json=completion(f"Summary of {title}"))


class FakeEndpoint:
    """
    Scripted summarization endpoint for httpx.MockTransport.
    Queued responses are used first, then ``responder``.
    """

    def __init__(self, *responses: Any, responder: Optional[Callable] = None):
        self.responses = list(responses)
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            item = self.responses.pop(0)
        elif self.responder is not None:
            item = self.responder
        else:
            item = completion("A short summary.")

        if isinstance(item, httpx.Response):
            return item
        if callable(item):
            return item(request)
        return httpx.Response(200, json=item)

    @property
    def payloads(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        DATABASE_PATH=str(tmp_path / "data" / "app.db"),
        OUTPUT_DIR=str(tmp_path / "output"),
        SUMMARY_ENDPOINT_URL=ENDPOINT,
        SUMMARY_API_KEY="anon-key",
        SESSION_TOKEN="session-token",
        REQUEST_TIMEOUT=2.0,
        MAX_RETRIES=3,
        RETRY_BASE_DELAY=0.0,
    )


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint()


@pytest_asyncio.fixture
async def context(config: Config, endpoint: FakeEndpoint) -> AppContext:
    return await create_context(config, transport=httpx.MockTransport(endpoint))


@pytest.fixture
def post() -> Post:
    return Post(
        id="post-1",
        title="Rust 2.0 announced",
        content="The Rust team announced a new edition with faster compile times.",
        topic_hint="programming",
        source="reddit",
        url="https://reddit.com/r/programming/comments/abc",
        author="ferris",
    )
