"""Per-review tracing: timed spans plus the ordered stage timeline."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from submittal_review.config.constants import REVIEW_STAGE_LABELS
from submittal_review.models.domain import ReviewStage, ReviewTrace


@dataclass
class Span:
    name: str
    start_ms: float
    end_ms: float = 0.0
    metadata: dict = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "start_ms": round(self.start_ms, 2),
            "end_ms": round(self.end_ms, 2),
            "duration_ms": round(self.duration_ms, 2),
            **self.metadata,
        }


class TraceContext:
    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or str(uuid4())
        self.spans: list[Span] = []
        self.stages: list[dict] = []
        self.start_time = time.monotonic()
        self._epoch = time.time()

    def _now_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    @contextmanager
    def span(self, name: str, **metadata):
        s = Span(name=name, start_ms=self._now_ms(), metadata=metadata)
        try:
            yield s
        except Exception as e:
            s.metadata["error"] = type(e).__name__
            raise
        finally:
            s.end_ms = self._now_ms()
            self.spans.append(s)

    def mark_stage(self, stage: ReviewStage) -> dict:
        """Record entry into a review stage and return its progress payload."""
        event = {
            "id": stage.value,
            "label": REVIEW_STAGE_LABELS[stage.value],
            "timestamp": time.time(),
        }
        self.stages.append(event)
        return event

    @property
    def elapsed_ms(self) -> float:
        return self._now_ms()

    def to_trace(
        self,
        filename: str,
        verdict: str,
        evidence_count: int,
        graph_evidence_count: int,
        critical_reasons: list[str],
    ) -> ReviewTrace:
        return ReviewTrace(
            trace_id=self.trace_id,
            filename=filename,
            timestamp=datetime.fromtimestamp(self._epoch, tz=timezone.utc),
            latency_ms=self.elapsed_ms,
            verdict=verdict,
            evidence_count=evidence_count,
            graph_evidence_count=graph_evidence_count,
            critical_reasons=critical_reasons,
            spans=[s.to_dict() for s in self.spans],
        )
