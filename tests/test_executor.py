# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the pipeline executor
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from pipeline_engine.composition.exceptions import PipelineValidationError
from pipeline_engine.composition.models import Pipeline, PipelineStep, StepInputRef
from pipeline_engine.execution.context import ExecutionContext
from pipeline_engine.core.errors import ExecutionError
from pipeline_engine.execution.executor import PipelineExecutor, resolve_step_input
from pipeline_engine.execution.metrics import PipelineMetrics
from pipeline_engine.execution.models import ExecutionStatus, InvocationResult, PipelineStepResult
from conftest import make_workflow, object_schema


def ok(**output):
    return InvocationResult(success=True, output=output)


def fail(error="boom"):
    return InvocationResult(success=False, error=error)


def make_pipeline(*steps):
    return Pipeline(
        id="pipe-1",
        name="Test",
        description="",
        owner_address="0x" + "a" * 40,
        steps=list(steps),
        total_price=0,
        created_at="2025-01-01T00:00:00+00:00",
        updated_at="2025-01-01T00:00:00+00:00",
    )


def mapped(**fields):
    return {target: StepInputRef(source=source, field=field) for target, (source, field) in fields.items()}


@pytest.fixture
def workflows():
    """Three-workflow catalog keyed by id"""
    return {
        "wf-a": make_workflow("wf-a", output_schema=object_schema({"price": "number"})),
        "wf-b": make_workflow("wf-b", input_schema=object_schema({"price": "number"})),
        "wf-c": make_workflow(
            "wf-c",
            input_schema=object_schema({"price": "string", "flag": "boolean", "extra": "number"}),
        ),
    }


@pytest.fixture
def invoker():
    """Invoker whose per-workflow results are set by each test"""
    invoker = MagicMock()
    invoker.results = {}

    async def invoke(workflow, payload):
        result = invoker.results[workflow.id]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return await result(payload)
        return result

    invoker.invoke = AsyncMock(side_effect=invoke)
    return invoker


@pytest.fixture
def metrics():
    return PipelineMetrics()


@pytest.fixture
def executor(invoker, metrics):
    """Executor with scripted invoker and events disabled"""
    return PipelineExecutor(invoker, metrics=metrics, step_timeout=1.0, pipeline_timeout=5.0)


@pytest.fixture
def three_steps():
    """a -> b, a -> c and b -> c"""
    return make_pipeline(
        PipelineStep(id="s-a", workflow_id="wf-a", position=0),
        PipelineStep(id="s-b", workflow_id="wf-b", position=1, input_mapping=mapped(price=("s-a", "price"))),
        PipelineStep(
            id="s-c", workflow_id="wf-c", position=2,
            input_mapping=mapped(price=("s-a", "price"), extra=("s-b", "value")),
        ),
    )


@pytest.mark.asyncio
async def test_all_steps_succeed(executor, invoker, workflows, three_steps):
    """completed status and finalOutput from the last step"""
    invoker.results = {"wf-a": ok(price=10), "wf-b": ok(value=1), "wf-c": ok(done=True)}

    execution = await executor.execute(three_steps, workflows, {"asset": "ETH"})

    assert execution.status == ExecutionStatus.COMPLETED
    assert execution.final_output == {"done": True}
    assert [r.step_id for r in execution.step_results] == ["s-a", "s-b", "s-c"]
    assert all(r.success for r in execution.step_results)


@pytest.mark.asyncio
async def test_middle_step_failure_is_partial(executor, invoker, workflows, three_steps):
    """Step 3 still runs; mappings from the failed step are left unset"""
    invoker.results = {"wf-a": ok(price=10), "wf-b": fail("upstream down"), "wf-c": ok(done=True)}

    execution = await executor.execute(three_steps, workflows)

    assert execution.status == ExecutionStatus.PARTIAL
    assert len(execution.step_results) == 3
    assert execution.step_results[1].error == "upstream down"
    assert execution.step_results[2].success is True

    step_c_payload = invoker.invoke.call_args_list[2].args[1]
    assert step_c_payload == {"price": "10"}  # number coerced to the string input type
    assert "extra" not in step_c_payload


@pytest.mark.asyncio
async def test_all_steps_fail(executor, invoker, workflows, three_steps):
    invoker.results = {"wf-a": fail(), "wf-b": fail(), "wf-c": fail()}

    execution = await executor.execute(three_steps, workflows)

    assert execution.status == ExecutionStatus.FAILED
    assert execution.final_output is None
    assert len(execution.step_results) == 3


@pytest.mark.asyncio
async def test_final_output_requires_last_step_success(executor, invoker, workflows, three_steps):
    invoker.results = {"wf-a": ok(price=1), "wf-b": ok(value=2), "wf-c": fail()}

    execution = await executor.execute(three_steps, workflows)

    assert execution.status == ExecutionStatus.PARTIAL
    assert execution.final_output is None


@pytest.mark.asyncio
async def test_unmapped_steps_receive_trigger_input(executor, invoker, workflows):
    pipeline = make_pipeline(
        PipelineStep(id="s-a", workflow_id="wf-a", position=0),
        PipelineStep(id="s-b", workflow_id="wf-b", position=1),
    )
    invoker.results = {"wf-a": ok(price=1), "wf-b": ok()}

    await executor.execute(pipeline, workflows, {"asset": "ETH"})

    payloads = [call.args[1] for call in invoker.invoke.call_args_list]
    assert payloads == [{"asset": "ETH"}, {"asset": "ETH"}]


@pytest.mark.asyncio
async def test_steps_run_in_position_order(executor, invoker, workflows):
    pipeline = make_pipeline(
        PipelineStep(id="second", workflow_id="wf-b", position=1),
        PipelineStep(id="first", workflow_id="wf-a", position=0),
    )
    invoker.results = {"wf-a": ok(), "wf-b": ok()}

    execution = await executor.execute(pipeline, workflows)

    assert [r.step_id for r in execution.step_results] == ["first", "second"]


@pytest.mark.asyncio
async def test_invoker_exception_recorded(executor, invoker, workflows, three_steps):
    """Exceptions become failed step results, never propagate"""
    invoker.results = {"wf-a": RuntimeError("connection reset"), "wf-b": ok(), "wf-c": ok()}

    execution = await executor.execute(three_steps, workflows)

    assert execution.status == ExecutionStatus.PARTIAL
    assert "connection reset" in execution.step_results[0].error


@pytest.mark.asyncio
async def test_missing_workflow_recorded(executor, invoker, workflows, three_steps):
    del workflows["wf-b"]
    invoker.results = {"wf-a": ok(price=1), "wf-c": ok()}

    execution = await executor.execute(three_steps, workflows)

    assert execution.step_results[1].error == "Workflow not found"
    assert invoker.invoke.call_count == 2


@pytest.mark.asyncio
async def test_step_timeout(invoker, workflows, three_steps):
    async def slow(payload):
        await asyncio.sleep(1)
        return ok()

    invoker.results = {"wf-a": slow, "wf-b": ok(), "wf-c": ok()}
    executor = PipelineExecutor(invoker, step_timeout=0.05, pipeline_timeout=5.0)

    execution = await executor.execute(three_steps, workflows)

    assert execution.step_results[0].error == "Step execution timed out"
    assert execution.step_results[1].success is True


@pytest.mark.asyncio
async def test_pipeline_deadline_fails_remaining_steps(invoker, workflows, three_steps):
    async def slow(payload):
        await asyncio.sleep(1)
        return ok()

    invoker.results = {"wf-a": slow, "wf-b": ok(), "wf-c": ok()}
    executor = PipelineExecutor(invoker, step_timeout=10.0, pipeline_timeout=0.05)

    execution = await executor.execute(three_steps, workflows)

    assert execution.status == ExecutionStatus.FAILED
    assert [r.error for r in execution.step_results] == ["Pipeline deadline exceeded"] * 3
    assert invoker.invoke.call_count == 1


@pytest.mark.asyncio
async def test_cancellation_fails_unstarted_steps(executor, invoker, workflows, three_steps):
    cancel = asyncio.Event()

    async def cancel_after(payload):
        cancel.set()
        return ok(price=1)

    invoker.results = {"wf-a": cancel_after, "wf-b": ok(), "wf-c": ok()}

    execution = await executor.execute(three_steps, workflows, cancel_event=cancel)

    assert execution.status == ExecutionStatus.PARTIAL
    assert execution.step_results[0].success is True
    assert [r.error for r in execution.step_results[1:]] == ["Execution cancelled"] * 2


@pytest.mark.asyncio
async def test_invalid_pipeline_raises(executor, workflows):
    pipeline = make_pipeline(
        PipelineStep(id="s-a", workflow_id="wf-a", position=0, input_mapping=mapped(x=("s-b", "y"))),
        PipelineStep(id="s-b", workflow_id="wf-b", position=1),
    )
    with pytest.raises(PipelineValidationError):
        await executor.execute(pipeline, workflows)


@pytest.mark.asyncio
async def test_metrics_recorded(executor, invoker, metrics, workflows, three_steps):
    invoker.results = {"wf-a": ok(price=1), "wf-b": fail(), "wf-c": ok()}

    await executor.execute(three_steps, workflows)

    snapshot = metrics.snapshot()
    assert snapshot["totalExecutions"] == 1
    assert snapshot["partialExecutions"] == 1
    assert snapshot["stepExecutions"] == 3
    assert snapshot["stepFailures"] == 1


@pytest.mark.asyncio
async def test_events_emitted(invoker, workflows, three_steps):
    events = MagicMock()
    events.emit = AsyncMock()
    invoker.results = {"wf-a": ok(price=1), "wf-b": fail(), "wf-c": ok()}
    executor = PipelineExecutor(invoker, events=events)

    await executor.execute(three_steps, workflows)

    emitted = [call.args[0] for call in events.emit.await_args_list]
    assert emitted[0] == "pipeline_started"
    assert emitted[-1] == "pipeline_completed"
    assert emitted.count("pipeline_step_started") == 3
    assert emitted.count("pipeline_step_failed") == 1


class TestResolveStepInput:
    """Test resolve_step_input"""

    def test_coerces_to_target_type(self, workflows):
        context = ExecutionContext("exec-1")
        context.record(PipelineStepResult(step_id="s-a", workflow_id="wf-a", success=True,
                                          output={"price": 5, "on": 1}))
        step = PipelineStep(
            id="s-c", workflow_id="wf-c", position=1,
            input_mapping=mapped(price=("s-a", "price"), flag=("s-a", "on")),
        )

        resolved = resolve_step_input(step, {}, context, workflows["wf-c"])

        assert resolved == {"price": "5", "flag": True}

    def test_missing_field_left_unset(self, workflows):
        context = ExecutionContext("exec-1")
        context.record(PipelineStepResult(step_id="s-a", workflow_id="wf-a", success=True, output={}))
        step = PipelineStep(id="s-b", workflow_id="wf-b", position=1, input_mapping=mapped(price=("s-a", "price")))

        assert resolve_step_input(step, {"asset": "ETH"}, context, workflows["wf-b"]) == {}

    def test_trigger_input_is_copied(self):
        trigger = {"asset": "ETH"}
        step = PipelineStep(id="s-a", workflow_id="wf-a", position=0)

        resolved = resolve_step_input(step, trigger, ExecutionContext("exec-1"))
        resolved["asset"] = "BTC"

        assert trigger == {"asset": "ETH"}


class TestExecutionContext:
    """Test ExecutionContext terminal guards"""

    def test_record_after_finalize_raises(self):
        context = ExecutionContext("exec-1")
        context.record(PipelineStepResult(step_id="s", workflow_id="w", success=True, output={"a": 1}))
        context.finalize("s")

        with pytest.raises(ExecutionError):
            context.record(PipelineStepResult(step_id="t", workflow_id="w", success=True))

    def test_finalize_twice_raises(self):
        context = ExecutionContext("exec-1")
        context.finalize(None)
        with pytest.raises(ExecutionError):
            context.finalize(None)


class TestPipelineMetrics:
    """Test PipelineMetrics"""

    def test_derived_values(self):
        metrics = PipelineMetrics()
        metrics.record_execution("completed", 100)
        metrics.record_execution("failed", 300)

        snapshot = metrics.snapshot()

        assert snapshot["avgDurationMs"] == 200
        assert snapshot["failureRate"] == 0.5
        assert snapshot["lastExecutionAt"] is not None

    def test_reset(self):
        metrics = PipelineMetrics()
        metrics.record_execution("partial", 10)
        metrics.reset()
        assert metrics.snapshot()["totalExecutions"] == 0
        assert metrics.snapshot()["avgDurationMs"] == 0
