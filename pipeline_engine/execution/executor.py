# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Executor

Sequential, best-effort execution engine.

Steps run strictly in position order. A failed step is recorded and the
next step still runs; nothing is rolled back. Inputs are resolved from
earlier outputs by step id, never by position.
"""

import asyncio
import time
import uuid
from typing import Any, Dict, Mapping, Optional

from pipeline_engine.core.errors import sanitize_error_for_user
from pipeline_engine.core.logging import get_service_logger
from pipeline_engine.composition.models import Pipeline, PipelineStep, WorkflowDescriptor
from pipeline_engine.composition.schema_checker import normalize_schema
from pipeline_engine.composition.type_compat import coerce, runtime_type
from pipeline_engine.composition.validation import validate_pipeline_steps
from .context import ExecutionContext
from .events import (
    PipelineEventLogger,
    PIPELINE_STARTED,
    STEP_STARTED,
    STEP_COMPLETED,
    STEP_FAILED,
    PIPELINE_COMPLETED,
    PIPELINE_FAILED,
)
from .invoker import WorkflowInvoker
from .metrics import PipelineMetrics
from .models import ExecutionStatus, PipelineExecution, PipelineStepResult

logger = get_service_logger("pipeline-executor")

ERROR_WORKFLOW_NOT_FOUND = "Workflow not found"
ERROR_DEADLINE_EXCEEDED = "Pipeline deadline exceeded"
ERROR_STEP_TIMEOUT = "Step execution timed out"
ERROR_CANCELLED = "Execution cancelled"


def resolve_step_input(
    step: PipelineStep,
    trigger_input: Mapping[str, Any],
    context: ExecutionContext,
    workflow: Optional[WorkflowDescriptor] = None,
) -> Dict[str, Any]:
    """
    Build a step's input.

    Steps without a mapping receive a copy of the trigger input. Mapped
    fields are read from the source step's recorded output; a missing
    source output or missing field leaves the target field unset. Values
    are coerced to the target input schema's type when it differs.
    """
    if not step.input_mapping:
        return dict(trigger_input)

    target_schema = normalize_schema(workflow.input_schema if workflow else None)
    resolved: Dict[str, Any] = {}

    for target_field, ref in step.input_mapping.items():
        source_output = context.get_output(ref.source)
        if source_output is None or ref.field not in source_output:
            continue

        value = source_output[ref.field]
        target_type = target_schema.properties.get(target_field)
        if target_type and value is not None:
            value_type = runtime_type(value)
            if value_type != target_type:
                value = coerce(value, value_type, target_type)

        resolved[target_field] = value

    return resolved


class PipelineExecutor:
    """
    Executes assembled pipelines.

    Holds no per-execution state, so one executor serves many concurrent
    executions.
    """

    def __init__(
        self,
        invoker: WorkflowInvoker,
        events: Optional[PipelineEventLogger] = None,
        metrics: Optional[PipelineMetrics] = None,
        step_timeout: float = 60.0,
        pipeline_timeout: float = 300.0,
    ):
        self.invoker = invoker
        self.events = events or PipelineEventLogger()
        self.metrics = metrics or PipelineMetrics()
        self.step_timeout = step_timeout
        self.pipeline_timeout = pipeline_timeout

    async def execute(
        self,
        pipeline: Pipeline,
        catalog: Mapping[str, WorkflowDescriptor],
        trigger_input: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
        execution_id: Optional[str] = None,
    ) -> PipelineExecution:
        """
        Execute a pipeline to a terminal status.

        Raises PipelineValidationError for structurally invalid pipelines;
        step failures are recorded, never raised.
        """
        steps = validate_pipeline_steps(pipeline.steps)
        trigger_input = trigger_input or {}

        context = ExecutionContext(
            execution_id or str(uuid.uuid4()),
            pipeline_id=pipeline.id,
            trigger_input=trigger_input,
        )
        deadline = time.monotonic() + self.pipeline_timeout

        await self.events.emit(PIPELINE_STARTED, {
            "pipelineId": pipeline.id,
            "executionId": context.execution_id,
            "pipelineName": pipeline.name,
            "stepCount": len(steps),
            "totalPrice": pipeline.total_price,
        })

        for step in steps:
            workflow = catalog.get(step.workflow_id)

            if cancel_event is not None and cancel_event.is_set():
                context.record(self._skipped(step, workflow, ERROR_CANCELLED))
                continue

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                context.record(self._skipped(step, workflow, ERROR_DEADLINE_EXCEEDED))
                continue

            if workflow is None:
                context.record(self._skipped(step, workflow, ERROR_WORKFLOW_NOT_FOUND))
                continue

            payload = resolve_step_input(step, trigger_input, context, workflow)
            result = await self._execute_step(step, workflow, payload, context, remaining)
            context.record(result)

        execution = context.finalize(steps[-1].id)

        self.metrics.record_execution(execution.status.value, execution.duration)
        for result in execution.step_results:
            self.metrics.record_step_result(result.success)

        succeeded = sum(1 for r in execution.step_results if r.success)
        await self.events.emit(
            PIPELINE_FAILED if execution.status == ExecutionStatus.FAILED else PIPELINE_COMPLETED,
            {
                "pipelineId": pipeline.id,
                "executionId": execution.execution_id,
                "status": execution.status.value,
                "totalDuration": execution.duration,
                "totalPaid": pipeline.total_price,
                "stepsCompleted": succeeded,
                "stepsTotal": len(steps),
            },
        )

        logger.info(
            f"Pipeline {pipeline.id} execution {execution.execution_id} finished: "
            f"{execution.status.value} ({succeeded}/{len(steps)} steps)"
        )
        return execution

    async def _execute_step(
        self,
        step: PipelineStep,
        workflow: WorkflowDescriptor,
        payload: Dict[str, Any],
        context: ExecutionContext,
        remaining: float,
    ) -> PipelineStepResult:
        """Invoke one step within the step timeout and remaining pipeline budget"""
        start = time.monotonic()
        budget_bound = remaining < self.step_timeout
        timeout = min(self.step_timeout, remaining)

        await self.events.emit(STEP_STARTED, {
            "pipelineId": context.pipeline_id,
            "executionId": context.execution_id,
            "stepId": step.id,
            "workflowId": workflow.id,
            "position": step.position,
        })

        error = None
        invocation = None
        try:
            invocation = await asyncio.wait_for(self.invoker.invoke(workflow, payload), timeout=timeout)
        except asyncio.TimeoutError:
            error = ERROR_DEADLINE_EXCEEDED if budget_bound else ERROR_STEP_TIMEOUT
        except Exception as e:
            logger.warning(f"Step {step.id} ({workflow.id}) raised: {e}")
            error = sanitize_error_for_user(e)

        duration = int((time.monotonic() - start) * 1000)

        if invocation is not None:
            success = invocation.success
            output = invocation.output
            if not success:
                error = invocation.error or "Workflow invocation failed"
        else:
            success = False
            output = None

        result = PipelineStepResult(
            step_id=step.id,
            workflow_id=workflow.id,
            workflow_name=workflow.name,
            position=step.position,
            success=success,
            output=output,
            duration=duration,
            error=None if success else error,
        )

        if success:
            await self.events.emit(STEP_COMPLETED, {
                "pipelineId": context.pipeline_id,
                "executionId": context.execution_id,
                "stepId": step.id,
                "workflowName": workflow.name,
                "duration": duration,
            })
        else:
            await self.events.emit(STEP_FAILED, {
                "pipelineId": context.pipeline_id,
                "executionId": context.execution_id,
                "stepId": step.id,
                "error": result.error,
                "duration": duration,
            })

        return result

    def _skipped(
        self,
        step: PipelineStep,
        workflow: Optional[WorkflowDescriptor],
        error: str,
    ) -> PipelineStepResult:
        """Failed result for a step that was never invoked"""
        return PipelineStepResult(
            step_id=step.id,
            workflow_id=step.workflow_id,
            workflow_name=workflow.name if workflow else step.workflow_name,
            position=step.position,
            success=False,
            duration=0,
            error=error,
        )
