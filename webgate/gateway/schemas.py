"""
Request schemas for every inbound dialect.

Bodies are read as raw JSON and validated here so that failures surface as
400 ``Invalid request: ...`` rather than FastAPI's default 422.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from webgate.core.exceptions import RequestValidationError

ChatRole = Literal["system", "developer", "user", "assistant", "tool"]
WebGeminiModel = Literal["gemini-3.0-pro", "gemini-2.5-pro", "gemini-2.5-flash"]


class ContentPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    text: Optional[str] = None


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: ChatRole
    content: Union[Annotated[str, Field(min_length=1)], list[ContentPart]]


class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    stream: Optional[StrictBool] = None
    messages: list[ChatMessage] = Field(..., min_length=1)


class ResponsesMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Optional[str] = None
    content: Optional[Union[str, list[ContentPart]]] = None


class ResponsesRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    stream: Optional[StrictBool] = None
    input: Optional[Union[str, list[Any]]] = None
    messages: Optional[list[ResponsesMessage]] = None


class GooglePart(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str = ""


class GoogleContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    parts: list[GooglePart] = Field(default_factory=list)


class GoogleGenerateRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    contents: list[GoogleContent] = Field(default_factory=list)


class GeminiRequest(BaseModel):
    """Body of ``/gemini``, ``/gemini-chat`` and ``/translate``."""

    message: str = Field(..., min_length=1)
    model: Optional[WebGeminiModel] = None
    files: Optional[list[str]] = None


def _format_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def parse_or_raise(schema: type[BaseModel], data: Any) -> Any:
    """Validate ``data``; failures become ``RequestValidationError`` with every issue listed."""
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        messages = [_format_error(err) for err in e.errors()]
        raise RequestValidationError(
            message=f"Invalid request: {'; '.join(messages)}",
            details={"errors": messages},
        )


__all__ = [
    "ChatRole",
    "ContentPart",
    "ChatMessage",
    "ChatCompletionRequest",
    "ResponsesMessage",
    "ResponsesRequest",
    "GooglePart",
    "GoogleContent",
    "GoogleGenerateRequest",
    "GeminiRequest",
    "parse_or_raise",
]
