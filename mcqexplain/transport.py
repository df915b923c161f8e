"""Transport collaborator: one chat completion per call.

The pipeline depends only on the :class:`Transport` protocol.  The concrete
:class:`OpenAITransport` talks to any OpenAI-compatible chat-completions
endpoint; ``openai`` is imported lazily so parsing and validation stay usable
without it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol

from .errors import TransportError
from .utils.logging import get_logger

if TYPE_CHECKING:
    from .config import ExplainConfig

logger = get_logger(__name__)

# Human-readable category for each provider status code.
STATUS_MESSAGES: dict[int, str] = {
    400: "Malformed request or invalid parameters.",
    401: "Missing or invalid API key.",
    403: "Access to the resource is forbidden.",
    404: "The requested model or endpoint does not exist.",
    422: "Request was well formed but semantically invalid.",
    429: "Rate limit exceeded; slow down and retry later.",
    500: "The model service hit an internal error.",
    502: "The upstream service is temporarily unavailable.",
    503: "The model is overloaded or under maintenance.",
}


def category_for_status(status: Optional[int]) -> str:
    if status is None:
        return "Unknown provider error."
    return STATUS_MESSAGES.get(status, f"Unexpected provider status {status}.")


class FinishReason(str, Enum):
    COMPLETE = "complete"
    TRUNCATED = "truncated"
    EMPTY = "empty"


@dataclass(frozen=True)
class RawModelReply:
    text: str
    finish_reason: FinishReason
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.finish_reason is FinishReason.EMPTY or not self.text.strip()


class Transport(Protocol):
    async def complete(self, system_text: str, user_text: str, token_budget: int) -> RawModelReply:
        """Return the provider reply or raise :class:`TransportError`."""
        ...


def _usage_dict(usage: Any) -> dict[str, int]:
    if usage is None:
        return {}
    raw = usage.model_dump() if hasattr(usage, "model_dump") else dict(usage)
    return {k: int(v) for k, v in raw.items() if isinstance(v, (int, float)) and not isinstance(v, bool)}


def reply_from_completion(completion: Any) -> RawModelReply:
    """Map a chat-completion response onto :class:`RawModelReply`."""
    choices = getattr(completion, "choices", None) or []
    usage = _usage_dict(getattr(completion, "usage", None))
    if not choices:
        return RawModelReply(text="", finish_reason=FinishReason.EMPTY, usage=usage)

    choice = choices[0]
    message = getattr(choice, "message", None)
    text = (getattr(message, "content", None) or "").strip()
    if getattr(choice, "finish_reason", None) == "length":
        finish = FinishReason.TRUNCATED
    elif not text:
        finish = FinishReason.EMPTY
    else:
        finish = FinishReason.COMPLETE
    return RawModelReply(text=text, finish_reason=finish, usage=usage)


class OpenAITransport:
    """Chat-completions transport for OpenAI-compatible providers."""

    def __init__(self, config: "ExplainConfig", client: Any = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as exc:
                raise TransportError("configuration", detail=f"openai package is not installed: {exc}") from exc

            if not self.config.api_key:
                raise TransportError(category_for_status(401), status=401, detail="no API key configured")
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.api_base or None,
                timeout=self.config.request_timeout,
                max_retries=2,
            )
        return self._client

    def build_payload(self, system_text: str, user_text: str, token_budget: int) -> dict[str, Any]:
        cfg = self.config
        payload: dict[str, Any] = {
            "model": cfg.lm,
            "messages": [
                {"role": "system", "content": system_text},
                {"role": "user", "content": user_text},
            ],
            "temperature": cfg.lm_temperature,
            "max_tokens": token_budget,
        }
        if cfg.top_p is not None:
            payload["top_p"] = cfg.top_p
        if cfg.presence_penalty is not None:
            payload["presence_penalty"] = cfg.presence_penalty
        if cfg.frequency_penalty is not None:
            payload["frequency_penalty"] = cfg.frequency_penalty
        if cfg.extra_body:
            payload["extra_body"] = dict(cfg.extra_body)
        return payload

    async def complete(self, system_text: str, user_text: str, token_budget: int) -> RawModelReply:
        client = self.client
        import openai

        payload = self.build_payload(system_text, user_text, token_budget)
        logger.debug(
            f"chat.completions request: model={payload['model']} max_tokens={token_budget} "
            f"temperature={payload['temperature']}"
        )
        try:
            completion = await client.chat.completions.create(**payload)
        except openai.APIStatusError as exc:
            raise TransportError(
                category_for_status(exc.status_code), status=exc.status_code, detail=exc.message
            ) from exc
        except openai.APITimeoutError as exc:
            raise TransportError("timeout", detail=str(exc)) from exc
        except openai.APIConnectionError as exc:
            raise TransportError("network", detail=str(exc)) from exc

        return reply_from_completion(completion)
