# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Execution Context

Tracks execution state for a single pipeline run. One context per run;
never shared between runs.
"""

import time
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

from pipeline_engine.core.errors import ExecutionError
from .models import ExecutionStatus, PipelineExecution, PipelineStepResult


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExecutionContext:
    """
    Execution context for a pipeline run.

    Tracks:
    - Step results (append-only)
    - Successful step outputs, keyed by step id
    - Execution metadata
    """

    def __init__(self, execution_id: str, pipeline_id: Optional[str] = None, trigger_input: Optional[Dict[str, Any]] = None):
        self.execution_id = execution_id
        self.pipeline_id = pipeline_id
        self.trigger_input = dict(trigger_input or {})
        self.started_at = utc_now()
        self.completed_at: Optional[str] = None
        self.status = ExecutionStatus.RUNNING
        self.final_output: Optional[Dict[str, Any]] = None
        self.duration = 0

        self.step_results: List[PipelineStepResult] = []
        self.step_outputs: Dict[str, Dict[str, Any]] = {}  # step_id -> output
        self._started_monotonic = time.monotonic()

    @property
    def is_terminal(self) -> bool:
        return self.status != ExecutionStatus.RUNNING

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started_monotonic) * 1000)

    def record(self, result: PipelineStepResult) -> None:
        """Append a step result"""
        if self.is_terminal:
            raise ExecutionError(
                f"Execution {self.execution_id} is already {self.status.value}",
                execution_id=self.execution_id,
            )
        self.step_results.append(result)
        if result.success and result.output is not None:
            self.step_outputs[result.step_id] = result.output

    def get_output(self, step_id: str) -> Optional[Dict[str, Any]]:
        """Output of a successful step, or None"""
        return self.step_outputs.get(step_id)

    def finalize(self, last_step_id: Optional[str]) -> PipelineExecution:
        """
        Aggregate step results into a terminal status.

        completed: every step succeeded; failed: every step failed;
        partial: anything in between.
        """
        if self.is_terminal:
            raise ExecutionError(
                f"Execution {self.execution_id} already finalized",
                execution_id=self.execution_id,
            )

        succeeded = sum(1 for r in self.step_results if r.success)
        if self.step_results and succeeded == len(self.step_results):
            self.status = ExecutionStatus.COMPLETED
        elif succeeded == 0:
            self.status = ExecutionStatus.FAILED
        else:
            self.status = ExecutionStatus.PARTIAL

        last_result = next(
            (r for r in reversed(self.step_results) if r.step_id == last_step_id),
            None,
        )
        self.final_output = last_result.output if last_result and last_result.success else None

        self.duration = self.elapsed_ms()
        self.completed_at = utc_now()
        return self.snapshot()

    def snapshot(self) -> PipelineExecution:
        """Current state as an execution record"""
        return PipelineExecution(
            execution_id=self.execution_id,
            pipeline_id=self.pipeline_id,
            status=self.status,
            step_results=list(self.step_results),
            final_output=self.final_output,
            duration=self.duration if self.is_terminal else self.elapsed_ms(),
            trigger_input=self.trigger_input,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
