# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for PipelineService

Tests pipeline persistence, pricing, execution history and suggestions.
"""

import json
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from pipeline_engine.composition.composer import PipelineComposer
from pipeline_engine.composition.exceptions import PipelineValidationError
from pipeline_engine.composition.models import PipelineStep, StepInputRef
from pipeline_engine.core.config import Config
from pipeline_engine.core.errors import NotFoundError, ValidationError
from pipeline_engine.execution.executor import PipelineExecutor
from pipeline_engine.execution.models import ExecutionStatus, InvocationResult
from pipeline_engine.services.catalog_service import CatalogService
from pipeline_engine.services.pipeline_service import (
    PipelineCreateRequest,
    PipelineService,
    PipelineUpdateRequest,
)
from conftest import make_workflow, object_schema

OWNER = "0x" + "ab" * 20


@pytest.fixture
def invoker():
    """Invoker that succeeds with a fixed output"""
    invoker = MagicMock()
    invoker.invoke = AsyncMock(return_value=InvocationResult(success=True, output={"price": 10}))
    return invoker


@pytest.fixture
def pipeline_service(temp_dir, catalog_dir, invoker):
    """PipelineService with temp directories"""
    return PipelineService(
        pipelines_dir=temp_dir / "pipelines",
        executions_dir=temp_dir / "executions",
        catalog=CatalogService(catalog_dir),
        executor=PipelineExecutor(invoker),
        config=Config(suggest_cache_ttl=300),
    )


@pytest.fixture
def create_request():
    return PipelineCreateRequest(
        name="Price then alert",
        description="Feeds the ETH price into an alert",
        owner_address=OWNER,
        steps=[
            PipelineStep(id="feed", workflow_id="eth-price-feed", position=0),
            PipelineStep(
                id="alert", workflow_id="price-alert", position=1,
                input_mapping={"price": StepInputRef(source="feed", field="price")},
            ),
        ],
    )


class TestCreatePipeline:
    """Test create_pipeline"""

    @pytest.mark.asyncio
    async def test_creates_and_persists(self, pipeline_service, create_request, temp_dir):
        pipeline = await pipeline_service.create_pipeline(create_request)

        assert pipeline.is_active is True
        assert pipeline.execution_count == 0
        assert pipeline.total_price == 15000
        assert pipeline.steps[0].workflow_name == "ETH Price Feed"

        stored = json.loads((temp_dir / "pipelines" / f"{pipeline.id}.json").read_text())
        assert stored["ownerAddress"] == OWNER
        assert stored["totalPrice"] == 15000

    @pytest.mark.asyncio
    async def test_unknown_workflow_priced_zero(self, pipeline_service, create_request):
        create_request.steps[1] = PipelineStep(id="alert", workflow_id="unknown", position=1)
        pipeline = await pipeline_service.create_pipeline(create_request)
        assert pipeline.total_price == 10000

    @pytest.mark.asyncio
    async def test_rejects_invalid_steps(self, pipeline_service, create_request):
        create_request.steps[1] = PipelineStep(id="alert", workflow_id="price-alert", position=2)
        with pytest.raises(PipelineValidationError):
            await pipeline_service.create_pipeline(create_request)

    @pytest.mark.asyncio
    async def test_from_proposal(self, pipeline_service, catalog):
        proposal = PipelineComposer().auto_compose("price alert", catalog)

        pipeline = await pipeline_service.create_pipeline(proposal, owner_address=OWNER)

        assert pipeline.name == proposal.name
        assert pipeline.total_price == proposal.total_price
        assert [s.id for s in pipeline.steps] == [s.id for s in proposal.steps]

    @pytest.mark.asyncio
    async def test_proposal_requires_owner(self, pipeline_service, catalog):
        proposal = PipelineComposer().auto_compose("price alert", catalog)
        with pytest.raises(ValidationError):
            await pipeline_service.create_pipeline(proposal)


class TestPipelineCrud:
    """Test get, list, update and deactivate"""

    @pytest.mark.asyncio
    async def test_get_unknown(self, pipeline_service):
        with pytest.raises(NotFoundError):
            await pipeline_service.get_pipeline("missing")

    @pytest.mark.asyncio
    async def test_rejects_path_like_ids(self, pipeline_service):
        with pytest.raises(ValidationError):
            await pipeline_service.get_pipeline("../secrets")

    @pytest.mark.asyncio
    async def test_list_filters(self, pipeline_service, create_request):
        first = await pipeline_service.create_pipeline(create_request)
        other = create_request.model_copy(update={"owner_address": "0x" + "cd" * 20})
        await pipeline_service.create_pipeline(other)
        await pipeline_service.deactivate_pipeline(first.id)

        by_owner = await pipeline_service.list_pipelines(owner=OWNER.upper().replace("0X", "0x"))
        active = await pipeline_service.list_pipelines(active=True)

        assert by_owner["total"] == 1
        assert active["total"] == 1
        assert active["pipelines"][0].owner_address != OWNER

    @pytest.mark.asyncio
    async def test_list_pagination(self, pipeline_service, create_request):
        for _ in range(3):
            await pipeline_service.create_pipeline(create_request)

        page = await pipeline_service.list_pipelines(page=2, limit=2)

        assert page["total"] == 3
        assert len(page["pipelines"]) == 1

    @pytest.mark.asyncio
    async def test_update_reprices(self, pipeline_service, create_request):
        pipeline = await pipeline_service.create_pipeline(create_request)

        updated = await pipeline_service.update_pipeline(pipeline.id, PipelineUpdateRequest(
            name="Feed only",
            steps=[PipelineStep(id="feed", workflow_id="eth-price-feed", position=0)],
        ))

        assert updated.name == "Feed only"
        assert updated.description == pipeline.description
        assert updated.total_price == 10000
        assert (await pipeline_service.get_pipeline(pipeline.id)).total_price == 10000

    @pytest.mark.asyncio
    async def test_update_can_clear_description(self, pipeline_service, create_request):
        pipeline = await pipeline_service.create_pipeline(create_request)

        updated = await pipeline_service.update_pipeline(pipeline.id, PipelineUpdateRequest(description=""))

        assert updated.description == ""
        assert updated.name == pipeline.name
        assert updated.steps == pipeline.steps

    @pytest.mark.asyncio
    async def test_deactivate_is_soft_delete(self, pipeline_service, create_request):
        pipeline = await pipeline_service.create_pipeline(create_request)

        await pipeline_service.deactivate_pipeline(pipeline.id)

        assert (await pipeline_service.get_pipeline(pipeline.id)).is_active is False

    @pytest.mark.asyncio
    async def test_price_breakdown(self, pipeline_service, create_request):
        breakdown = pipeline_service.price_breakdown(create_request.steps)

        assert [item.price for item in breakdown] == [10000, 5000]
        assert breakdown[0].creator_address == "0x" + "1" * 40
        assert breakdown[1].workflow_name == "Threshold Alert"


class TestExecutePipeline:
    """Test execute_pipeline and history"""

    @pytest.mark.asyncio
    async def test_execute_persists_and_counts(self, pipeline_service, create_request, temp_dir):
        pipeline = await pipeline_service.create_pipeline(create_request)

        execution = await pipeline_service.execute_pipeline(pipeline.id, {"asset": "ETH"})

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.trigger_input == {"asset": "ETH"}
        stored = json.loads(
            (temp_dir / "executions" / pipeline.id / f"{execution.execution_id}.json").read_text()
        )
        assert stored["status"] == "completed"
        assert len(stored["stepResults"]) == 2
        assert (await pipeline_service.get_pipeline(pipeline.id)).execution_count == 1

    @pytest.mark.asyncio
    async def test_inactive_pipeline_refused(self, pipeline_service, create_request, invoker):
        pipeline = await pipeline_service.create_pipeline(create_request)
        await pipeline_service.deactivate_pipeline(pipeline.id)

        with pytest.raises(ValidationError):
            await pipeline_service.execute_pipeline(pipeline.id)
        invoker.invoke.assert_not_called()

    @pytest.mark.asyncio
    async def test_history_newest_first(self, pipeline_service, create_request):
        pipeline = await pipeline_service.create_pipeline(create_request)
        first = await pipeline_service.execute_pipeline(pipeline.id)
        second = await pipeline_service.execute_pipeline(pipeline.id)

        history = await pipeline_service.list_executions(pipeline.id)

        assert history["total"] == 2
        assert {e.execution_id for e in history["executions"]} == {first.execution_id, second.execution_id}
        assert history["executions"][0].started_at >= history["executions"][1].started_at

    @pytest.mark.asyncio
    async def test_sweep_marks_stale_running_as_failed(self, pipeline_service, temp_dir):
        directory = temp_dir / "executions" / "pipe-1"
        directory.mkdir(parents=True)
        old = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        fresh = datetime.now(timezone.utc).isoformat()
        (directory / "old.json").write_text(json.dumps(
            {"executionId": "old", "pipelineId": "pipe-1", "status": "running", "startedAt": old}
        ))
        (directory / "fresh.json").write_text(json.dumps(
            {"executionId": "fresh", "pipelineId": "pipe-1", "status": "running", "startedAt": fresh}
        ))

        swept = await pipeline_service.sweep_stale_executions()

        assert swept == 1
        assert json.loads((directory / "old.json").read_text())["status"] == "failed"
        assert json.loads((directory / "fresh.json").read_text())["status"] == "running"


class TestSuggestPairs:
    """Test suggest_pairs"""

    def test_compatible_pairs_best_first(self, pipeline_service):
        suggestions = pipeline_service.suggest_pairs()

        assert suggestions
        assert all(s.score >= 0.5 for s in suggestions)
        assert all(s.source_workflow_id != s.target_workflow_id for s in suggestions)
        assert [s.score for s in suggestions] == sorted((s.score for s in suggestions), reverse=True)

    def test_cached(self, pipeline_service):
        first = pipeline_service.suggest_pairs()
        pipeline_service.catalog.reload = MagicMock()
        assert pipeline_service.suggest_pairs() is first

    def test_catalog_reload_invalidates_cache(self, pipeline_service, catalog_dir):
        first = pipeline_service.suggest_pairs()
        logger_workflow = make_workflow(
            "price-logger",
            input_schema=object_schema({"price": "number"}, ["price"]),
            output_schema=object_schema({"logged": "boolean"}),
        )
        (catalog_dir / "extra.json").write_text(json.dumps(logger_workflow.model_dump(by_alias=True)))

        pipeline_service.catalog.reload()
        suggestions = pipeline_service.suggest_pairs()

        assert suggestions is not first
        assert any(s.target_workflow_id == "price-logger" for s in suggestions)
