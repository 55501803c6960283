# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
In-memory pipeline execution metrics.
"""

import time
from typing import Any, Dict, Optional


class PipelineMetrics:
    """Process-local execution counters"""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.total_executions = 0
        self.completed_executions = 0
        self.failed_executions = 0
        self.partial_executions = 0
        self.total_duration_ms = 0
        self.step_executions = 0
        self.step_failures = 0
        self.last_execution_at: Optional[int] = None

    def record_execution(self, status: str, duration_ms: int) -> None:
        self.total_executions += 1
        self.total_duration_ms += duration_ms
        self.last_execution_at = int(time.time() * 1000)
        if status == "completed":
            self.completed_executions += 1
        elif status == "failed":
            self.failed_executions += 1
        elif status == "partial":
            self.partial_executions += 1

    def record_step_result(self, success: bool) -> None:
        self.step_executions += 1
        if not success:
            self.step_failures += 1

    def snapshot(self) -> Dict[str, Any]:
        """Counters plus derived average duration and failure rate"""
        avg = self.total_duration_ms / self.total_executions if self.total_executions else 0
        fail_rate = self.failed_executions / self.total_executions if self.total_executions else 0
        return {
            "totalExecutions": self.total_executions,
            "completedExecutions": self.completed_executions,
            "failedExecutions": self.failed_executions,
            "partialExecutions": self.partial_executions,
            "totalDurationMs": self.total_duration_ms,
            "stepExecutions": self.step_executions,
            "stepFailures": self.step_failures,
            "lastExecutionAt": self.last_execution_at,
            "avgDurationMs": avg,
            "failureRate": fail_rate,
        }
