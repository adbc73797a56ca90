"""
请求步骤追踪

一次 decode / analysis 请求经过的步骤（resolve_interface、decode_calldata、call_reasoning、
extract_fields）各记录一条 TraceStep，响应中返回 trace_id 与各步骤耗时。
"""
from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator

from .logger import get_logger

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TraceStep:
    """单个追踪步骤"""

    index: int
    name: str
    input: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    status: str = "running"  # running / success / failed
    error: str | None = None
    error_kind: str | None = None
    duration_ms: int | None = None
    _started: float = field(default_factory=time.perf_counter, repr=False)

    def set_output(self, output: dict[str, Any]) -> None:
        self.output = output

    def finish(self, error: BaseException | None = None) -> None:
        self.duration_ms = int((time.perf_counter() - self._started) * 1000)
        if error is None:
            self.status = "success"
            return
        self.status = "failed"
        self.error = str(error)
        self.error_kind = getattr(error, "kind", type(error).__name__)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"step": self.index, "name": self.name, "status": self.status}
        for key in ("duration_ms", "input", "output", "error", "error_kind"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


class Tracer:
    """请求追踪器"""

    def __init__(self, trace_id: str | None = None, contract_address: str | None = None):
        self.started_at = _utc_now()
        self.trace_id = trace_id or f"cd-{self.started_at:%Y%m%d}-{uuid.uuid4().hex[:12]}"
        self.contract_address = contract_address
        self.steps: list[TraceStep] = []
        self._started = time.perf_counter()

    @contextmanager
    def step(self, name: str, input_data: dict[str, Any] | None = None) -> Iterator[TraceStep]:
        """记录一个步骤；块内抛出的异常标记为 failed 后继续向上传播"""
        current = TraceStep(index=len(self.steps) + 1, name=name, input=input_data)
        self.steps.append(current)
        logger.debug("trace_step_started", trace_id=self.trace_id, step=current.index, name=name)
        try:
            yield current
        except BaseException as e:
            current.finish(e)
            logger.debug(
                "trace_step_failed",
                trace_id=self.trace_id,
                name=name,
                duration_ms=current.duration_ms,
                error_kind=current.error_kind,
            )
            raise
        current.finish()
        logger.debug("trace_step_ended", trace_id=self.trace_id, name=name, duration_ms=current.duration_ms)

    def get_total_duration_ms(self) -> int:
        return int((time.perf_counter() - self._started) * 1000)

    def get_steps_list(self) -> list[dict[str, Any]]:
        return [s.to_dict() for s in self.steps]

    def get_timings(self) -> dict[str, int]:
        """各步骤耗时汇总，键为 <step>_ms，另含 total_ms"""
        timings = {"total_ms": self.get_total_duration_ms()}
        for s in self.steps:
            if s.duration_ms is not None:
                timings[f"{s.name}_ms"] = s.duration_ms
        return timings
