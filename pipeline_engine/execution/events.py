# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Execution Events

Emits execution lifecycle events as structured log records and, when an
event sink is configured, POSTs them to it. Sink failures never affect
execution.
"""

import time
from typing import Any, Dict, Optional, Set

import httpx

from pipeline_engine.core.logging import get_service_logger, log_event

logger = get_service_logger("pipeline-events")

PIPELINE_STARTED = "pipeline_started"
STEP_STARTED = "pipeline_step_started"
STEP_COMPLETED = "pipeline_step_completed"
STEP_FAILED = "pipeline_step_failed"
PIPELINE_COMPLETED = "pipeline_completed"
PIPELINE_FAILED = "pipeline_failed"


class PipelineEventLogger:
    """
    Publishes pipeline execution events.

    One instance serves every execution. A sink delivery failure stops
    delivery for the rest of that execution only; other runs keep
    publishing.
    """

    def __init__(
        self,
        sink_url: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.sink_url = sink_url
        self.enabled = bool(sink_url)
        self.client = client or (httpx.AsyncClient(timeout=timeout) if sink_url else None)
        self._failed_runs: Set[str] = set()  # executionIds whose sink delivery failed

    def sink_disabled_for(self, execution_id: Optional[str]) -> bool:
        return execution_id in self._failed_runs

    async def emit(self, event_type: str, data: Dict[str, Any]) -> None:
        """Log the event and forward it to the sink"""
        payload = {**data, "timestamp": int(time.time() * 1000)}
        level = "WARNING" if event_type in (STEP_FAILED, PIPELINE_FAILED) else "INFO"
        log_event(logger, event_type, level=level, event_type=event_type, **payload)

        execution_id = data.get("executionId")
        if self.enabled and execution_id not in self._failed_runs:
            try:
                response = await self.client.post(self.sink_url, json={"type": event_type, "data": payload})
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(f"Event sink unavailable for execution {execution_id}, disabling for this run: {e}")
                if execution_id is not None:
                    self._failed_runs.add(execution_id)

        if event_type in (PIPELINE_COMPLETED, PIPELINE_FAILED):
            self._failed_runs.discard(execution_id)

    async def close(self) -> None:
        """Close HTTP client"""
        if self.client is not None:
            await self.client.aclose()
