"""
Pydantic schemas for the chat-completion wire format
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from core.errors import InvalidResponseError, PayloadValidationError


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    """
    Request body accepted by the summarization endpoint
    """
    model: str = Field(..., min_length=1)
    messages: List[ChatMessage] = Field(..., min_length=1)


class ChoiceMessage(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class Choice(BaseModel):
    index: Optional[int] = None
    message: Optional[ChoiceMessage] = None
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """
    Provider response. Only ``choices`` is relied upon; everything else passes through.
    """
    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[Choice] = []

    model_config = {"extra": "allow"}

    @property
    def first_content(self) -> Optional[str]:
        if not self.choices or self.choices[0].message is None:
            return None
        return self.choices[0].message.content


def build_request(model: str, system_prompt: str, user_prompt: str) -> ChatCompletionRequest:
    """Build and validate the request payload. Raises PayloadValidationError."""
    try:
        return ChatCompletionRequest(
            model=model,
            messages=[
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=user_prompt),
            ],
        )
    except ValidationError as e:
        raise PayloadValidationError(f"Invalid request payload: {e}") from e


def parse_completion(data: object) -> str:
    """
    Validate a response body and extract the first choice's text.
    Raises InvalidResponseError on a shape mismatch or empty content.
    """
    try:
        response = ChatCompletionResponse.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseError(f"Unexpected response shape: {e}") from e

    content = response.first_content
    if not content or not content.strip():
        raise InvalidResponseError("Invalid or empty response from summarization API")
    return content
