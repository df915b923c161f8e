"""Terminal error taxonomy for the explanation pipeline.

Every failure that leaves :func:`mcqexplain.controller.explain` is one of the
:class:`PipelineError` subclasses below.  Each carries a stable ``code`` tag
for callers that dispatch on the failure class, and a ``user_message`` that is
safe to show to end users.  Parse diagnostics stay in ``detail`` and in the
logs.
"""

from __future__ import annotations

from typing import Optional

USER_FACING_MESSAGE = "Explanation generation failed, please retry."


class PipelineError(Exception):
    """Base class for every terminal pipeline failure."""

    code = "pipeline_error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.code)
        self.detail = detail

    @property
    def user_message(self) -> str:
        return USER_FACING_MESSAGE

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.user_message}


class TransportError(PipelineError):
    """Provider-side or network failure reported by the transport collaborator."""

    code = "transport_error"

    def __init__(self, category: str, status: Optional[int] = None, detail: str = "") -> None:
        self.category = category
        self.status = status
        label = f"provider error ({status})" if status is not None else "provider error"
        super().__init__(f"{label}: {category}" + (f" ({detail})" if detail else ""))

    def to_dict(self) -> dict[str, object]:
        out = super().to_dict()
        out["category"] = self.category
        out["status"] = self.status
        return out


class EmptyReplyError(PipelineError):
    """Retries exhausted without the provider returning any text."""

    code = "empty_reply"


class TruncatedReplyError(PipelineError):
    """Retries exhausted while the reply was still being cut off."""

    code = "truncated_reply"


class MalformedGrammarError(PipelineError):
    """Reply could not be parsed in either grammar and was not truncated."""

    code = "malformed_grammar"


class SynthesisAssertionError(PipelineError):
    """The fallback synthesizer produced a record that failed validation."""

    code = "synthesis_assertion"


class RetryableParseError(Exception):
    """Parse failure that looks like truncation; handled by the controller.

    Never crosses the pipeline boundary: when retries are exhausted the
    controller surfaces it as :class:`TruncatedReplyError`.
    """
