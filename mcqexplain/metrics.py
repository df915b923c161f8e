"""Per-attempt timing and token usage.

``track_step`` times one block and appends a :class:`StepMetric` to a
:class:`PipelineMetrics`.  Token counts come from the provider's usage block,
which the block reports through the yielded metric.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator, Mapping, Optional


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class StepMetric:
    """Metrics for a single pipeline step."""

    name: str
    duration_s: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add_usage(self, usage: Optional[Mapping[str, int]]) -> None:
        """Accumulate an OpenAI-style usage block (``prompt_tokens``/``completion_tokens``)."""
        if not usage:
            return
        self.input_tokens += int(usage.get("prompt_tokens", 0))
        self.output_tokens += int(usage.get("completion_tokens", 0))


@dataclass
class PipelineMetrics:
    """Aggregated metrics for an entire pipeline run."""

    steps: list[StepMetric] = field(default_factory=list)

    @property
    def total_duration_s(self) -> float:
        return sum(s.duration_s for s in self.steps)

    @property
    def total_input_tokens(self) -> int:
        return sum(s.input_tokens for s in self.steps)

    @property
    def total_output_tokens(self) -> int:
        return sum(s.output_tokens for s in self.steps)

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def token_summary(self) -> dict[str, int]:
        return {"input": self.total_input_tokens, "output": self.total_output_tokens}


# ---------------------------------------------------------------------------
# Step-timing context manager
# ---------------------------------------------------------------------------


@contextmanager
def track_step(metrics: PipelineMetrics, step_name: str) -> Generator[StepMetric, None, None]:
    """Time a pipeline step; the step is recorded even if the block raises.

    Usage::

        metrics = PipelineMetrics()
        with track_step(metrics, "Attempt 1") as step:
            reply = await transport.complete(...)
            step.add_usage(reply.usage)
    """
    step = StepMetric(step_name)
    t0 = time.perf_counter()
    try:
        yield step
    finally:
        step.duration_s = time.perf_counter() - t0
        metrics.steps.append(step)
