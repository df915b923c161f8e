"""
mcqexplain - structured explanations for multiple-choice exam questions.

Asks a text-completion model to explain a question, then parses, normalizes
and validates the reply into a bounded :class:`StructuredExplanation`,
retrying truncated or empty replies and salvaging partial ones.

Main Components:
    - mcqexplain.controller: attempt/retry state machine (``explain``)
    - mcqexplain.parsing: tag and JSON reply parsers
    - mcqexplain.sdk: synchronous entry points for scripts
    - mcqexplain.cli: ``mcqexplain`` command-line interface
"""

__version__ = "0.3.0"

from .controller import AttemptController, ExplanationRun, explain
from .errors import PipelineError
from .schema import ExplanationRequest, StructuredExplanation
from .sdk import explain_question, salvage_reply

__all__ = [
    "AttemptController",
    "ExplanationRequest",
    "ExplanationRun",
    "PipelineError",
    "StructuredExplanation",
    "explain",
    "explain_question",
    "salvage_reply",
]
