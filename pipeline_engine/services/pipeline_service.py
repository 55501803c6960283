# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Service

Manages persisted pipelines and their execution history.
Disk-first: pipelines and execution records are JSON files.

Storage structure:
    pipelines/
    └── {pipeline_id}.json
    executions/
    └── {pipeline_id}/
        └── {execution_id}.json
"""

import asyncio
import json
import time
import uuid
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import aiofiles
from pydantic import Field

from pipeline_engine.core.config import Config
from pipeline_engine.core.errors import NotFoundError, ValidationError
from pipeline_engine.core.logging import get_service_logger
from pipeline_engine.composition.models import (
    CamelModel,
    Pipeline,
    PipelineStep,
    ProposedPipeline,
)
from pipeline_engine.composition.schema_checker import check_compatibility
from pipeline_engine.composition.validation import validate_pipeline_steps
from pipeline_engine.execution.context import utc_now
from pipeline_engine.execution.executor import PipelineExecutor
from pipeline_engine.execution.models import ExecutionStatus, PipelineExecution
from .catalog_service import CatalogService

logger = get_service_logger("pipeline")

OWNER_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class PipelineCreateRequest(CamelModel):
    """Request body for POST /pipelines"""
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(default="", max_length=500)
    owner_address: str = Field(pattern=OWNER_ADDRESS_PATTERN)
    steps: List[PipelineStep] = Field(min_length=1, max_length=20)


class PipelineUpdateRequest(CamelModel):
    """Request body for PUT /pipelines/{id}; omitted fields are unchanged"""
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    steps: Optional[List[PipelineStep]] = Field(default=None, min_length=1, max_length=20)


class PriceBreakdownItem(CamelModel):
    step_id: str
    workflow_id: str
    workflow_name: Optional[str] = None
    price: int = 0
    creator_address: Optional[str] = None
    position: int


class PipelineSuggestion(CamelModel):
    source_workflow_id: str
    source_workflow_name: str
    target_workflow_id: str
    target_workflow_name: str
    score: float
    compatible: bool
    matched_fields: int


class PipelineService:
    """
    Manages pipeline definitions and executions.

    Responsibilities:
    - CRUD for pipelines (soft delete via deactivation)
    - Pricing from the workflow catalog
    - Execution via PipelineExecutor with persisted history
    - Compatible pair suggestions over the catalog
    """

    def __init__(
        self,
        pipelines_dir: Path,
        executions_dir: Path,
        catalog: CatalogService,
        executor: PipelineExecutor,
        config: Optional[Config] = None,
    ):
        self.pipelines_dir = Path(pipelines_dir)
        self.executions_dir = Path(executions_dir)
        self.pipelines_dir.mkdir(parents=True, exist_ok=True)
        self.executions_dir.mkdir(parents=True, exist_ok=True)
        self.catalog = catalog
        self.executor = executor
        self.config = config or Config()

        # Async locks for file operations
        self._locks: Dict[str, asyncio.Lock] = {}
        self._suggest_cache: Optional[List[PipelineSuggestion]] = None
        self._suggest_cached_at = 0.0
        self._suggest_catalog: Optional[Dict[str, Any]] = None  # catalog map the cache was built from

        logger.info(f"PipelineService initialized with directory: {pipelines_dir}")

    # =========================================================================
    # Storage
    # =========================================================================

    def _get_lock(self, file_path: Path) -> asyncio.Lock:
        """Get or create lock for a specific file"""
        key = str(file_path)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def _pipeline_file(self, pipeline_id: str) -> Path:
        if not pipeline_id or "/" in pipeline_id or "\\" in pipeline_id or pipeline_id.startswith("."):
            raise ValidationError(f"Invalid pipeline id: {pipeline_id}", field="id")
        return self.pipelines_dir / f"{pipeline_id}.json"

    def _execution_file(self, pipeline_id: str, execution_id: str) -> Path:
        return self.executions_dir / pipeline_id / f"{execution_id}.json"

    async def _read_json(self, file_path: Path) -> Dict[str, Any]:
        async with aiofiles.open(file_path, "r") as f:
            return json.loads(await f.read())

    async def _write_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        await asyncio.to_thread(file_path.parent.mkdir, parents=True, exist_ok=True)
        async with aiofiles.open(file_path, "w") as f:
            await f.write(json.dumps(data, indent=2))

    async def _save_pipeline(self, pipeline: Pipeline) -> None:
        file_path = self._pipeline_file(pipeline.id)
        async with self._get_lock(file_path):
            await self._write_json(file_path, pipeline.model_dump(mode="json", by_alias=True))

    async def _save_execution(self, execution: PipelineExecution) -> None:
        file_path = self._execution_file(execution.pipeline_id, execution.execution_id)
        async with self._get_lock(file_path):
            await self._write_json(file_path, execution.model_dump(mode="json", by_alias=True))

    # =========================================================================
    # Pricing
    # =========================================================================

    def calculate_pipeline_price(self, steps: Sequence[PipelineStep]) -> int:
        """Sum of step workflow prices; unknown workflows count 0"""
        catalog = self.catalog.catalog_map()
        return sum(
            catalog[step.workflow_id].price_usdc if step.workflow_id in catalog else 0
            for step in steps
        )

    def price_breakdown(self, steps: Sequence[PipelineStep]) -> List[PriceBreakdownItem]:
        """Per-step price and creator, in position order"""
        catalog = self.catalog.catalog_map()
        breakdown = []
        for step in sorted(steps, key=lambda s: s.position):
            workflow = catalog.get(step.workflow_id)
            breakdown.append(PriceBreakdownItem(
                step_id=step.id,
                workflow_id=step.workflow_id,
                workflow_name=workflow.name if workflow else step.workflow_name,
                price=workflow.price_usdc if workflow else 0,
                creator_address=workflow.owner_address if workflow else None,
                position=step.position,
            ))
        return breakdown

    def _prepare_steps(self, steps: Sequence[PipelineStep]) -> List[PipelineStep]:
        """Validate and fill display names from the catalog"""
        ordered = validate_pipeline_steps(steps)
        catalog = self.catalog.catalog_map()
        return [
            step.model_copy(update={"workflow_name": catalog[step.workflow_id].name})
            if step.workflow_name is None and step.workflow_id in catalog
            else step
            for step in ordered
        ]

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create_pipeline(
        self,
        request: Union[PipelineCreateRequest, ProposedPipeline],
        owner_address: Optional[str] = None,
    ) -> Pipeline:
        """Create a pipeline from a create request or a composed proposal"""
        owner = owner_address or getattr(request, "owner_address", None)
        if not owner:
            raise ValidationError("ownerAddress is required", field="ownerAddress")

        steps = self._prepare_steps(request.steps)
        now = utc_now()
        pipeline = Pipeline(
            id=str(uuid.uuid4()),
            name=request.name,
            description=request.description,
            owner_address=owner,
            steps=steps,
            total_price=self.calculate_pipeline_price(steps),
            created_at=now,
            updated_at=now,
        )

        await self._save_pipeline(pipeline)
        logger.info(f"Created pipeline: {pipeline.id} ({len(steps)} steps, owner {owner})")
        return pipeline

    async def get_pipeline(self, pipeline_id: str) -> Pipeline:
        """Get a pipeline by id"""
        file_path = self._pipeline_file(pipeline_id)
        if not file_path.exists():
            raise NotFoundError("Pipeline", pipeline_id)

        async with self._get_lock(file_path):
            data = await self._read_json(file_path)
        return Pipeline(**data)

    async def list_pipelines(
        self,
        owner: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """List pipelines newest first, filtered by owner and active flag"""
        pipelines = []
        for file in self.pipelines_dir.glob("*.json"):
            try:
                pipeline = Pipeline(**await self._read_json(file))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping invalid pipeline file {file.name}: {e}")
                continue
            if owner and pipeline.owner_address.lower() != owner.lower():
                continue
            if active is not None and pipeline.is_active != active:
                continue
            pipelines.append(pipeline)

        pipelines.sort(key=lambda p: p.created_at, reverse=True)
        offset = (page - 1) * limit
        return {
            "pipelines": pipelines[offset:offset + limit],
            "total": len(pipelines),
            "page": page,
            "limit": limit,
        }

    async def update_pipeline(self, pipeline_id: str, request: PipelineUpdateRequest) -> Pipeline:
        """Update name, description or steps; steps are re-validated and re-priced"""
        pipeline = await self.get_pipeline(pipeline_id)

        updates: Dict[str, Any] = {"updated_at": utc_now()}
        if request.name is not None:
            updates["name"] = request.name
        if request.description is not None:
            updates["description"] = request.description
        if request.steps is not None:
            steps = self._prepare_steps(request.steps)
            updates["steps"] = steps
            updates["total_price"] = self.calculate_pipeline_price(steps)

        updated = pipeline.model_copy(update=updates)
        await self._save_pipeline(updated)
        logger.info(f"Updated pipeline: {pipeline_id}")
        return updated

    async def deactivate_pipeline(self, pipeline_id: str) -> Pipeline:
        """Soft delete: the pipeline stays on disk but can no longer execute"""
        pipeline = await self.get_pipeline(pipeline_id)
        updated = pipeline.model_copy(update={"is_active": False, "updated_at": utc_now()})
        await self._save_pipeline(updated)
        logger.info(f"Deactivated pipeline: {pipeline_id}")
        return updated

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute_pipeline(
        self,
        pipeline_id: str,
        trigger_input: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PipelineExecution:
        """
        Execute a pipeline and persist its execution record.

        The running record is written before the first step so a crash
        leaves a record for sweep_stale_executions().
        """
        pipeline = await self.get_pipeline(pipeline_id)
        if not pipeline.is_active:
            raise ValidationError(f"Pipeline {pipeline_id} is not active", field="id")

        trigger_input = trigger_input or {}
        running = PipelineExecution(
            execution_id=str(uuid.uuid4()),
            pipeline_id=pipeline.id,
            trigger_input=trigger_input,
            started_at=utc_now(),
        )
        await self._save_execution(running)

        try:
            execution = await self.executor.execute(
                pipeline,
                self.catalog.catalog_map(),
                trigger_input=trigger_input,
                cancel_event=cancel_event,
                execution_id=running.execution_id,
            )
        except ValidationError:
            failed = running.model_copy(update={"status": ExecutionStatus.FAILED, "completed_at": utc_now()})
            await self._save_execution(failed)
            raise

        execution = execution.model_copy(update={"started_at": running.started_at})
        await self._save_execution(execution)
        await self._increment_execution_count(pipeline.id)
        return execution

    async def _increment_execution_count(self, pipeline_id: str) -> None:
        file_path = self._pipeline_file(pipeline_id)
        async with self._get_lock(file_path):
            data = await self._read_json(file_path)
            data["executionCount"] = data.get("executionCount", 0) + 1
            await self._write_json(file_path, data)

    async def list_executions(self, pipeline_id: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Execution history of a pipeline, newest first"""
        self._pipeline_file(pipeline_id)
        executions = []
        for file in (self.executions_dir / pipeline_id).glob("*.json"):
            try:
                executions.append(PipelineExecution(**await self._read_json(file)))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping invalid execution file {file.name}: {e}")

        executions.sort(key=lambda e: e.started_at or "", reverse=True)
        offset = (page - 1) * limit
        return {
            "executions": executions[offset:offset + limit],
            "total": len(executions),
            "page": page,
            "limit": limit,
        }

    async def sweep_stale_executions(self) -> int:
        """
        Mark running executions older than the stale threshold as failed.

        Returns the number of records swept.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=self.config.stale_execution_threshold)
        swept = 0

        for file in self.executions_dir.glob("*/*.json"):
            try:
                execution = PipelineExecution(**await self._read_json(file))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping invalid execution file {file.name}: {e}")
                continue

            if execution.status != ExecutionStatus.RUNNING or not execution.started_at:
                continue
            if datetime.fromisoformat(execution.started_at) > cutoff:
                continue

            await self._save_execution(execution.model_copy(update={
                "status": ExecutionStatus.FAILED,
                "completed_at": utc_now(),
            }))
            swept += 1

        if swept:
            logger.warning(f"Marked {swept} stale execution(s) as failed")
        return swept

    # =========================================================================
    # Suggestions
    # =========================================================================

    def suggest_pairs(self) -> List[PipelineSuggestion]:
        """Compatible ordered workflow pairs, best first; cached until the TTL expires or the catalog reloads"""
        now = time.monotonic()
        catalog = self.catalog.catalog_map()
        if (
            self._suggest_cache is not None
            and self._suggest_catalog is catalog
            and now - self._suggest_cached_at < self.config.suggest_cache_ttl
        ):
            return self._suggest_cache

        workflows = [
            w for w in self.catalog.list_workflows()
            if w.input_schema and w.output_schema
        ]

        suggestions = []
        for source in workflows:
            for target in workflows:
                if source.id == target.id:
                    continue
                result = check_compatibility(
                    source.output_schema,
                    target.input_schema,
                    self.config.fuzzy_max_distance,
                )
                if result.score >= self.config.suggest_min_score:
                    suggestions.append(PipelineSuggestion(
                        source_workflow_id=source.id,
                        source_workflow_name=source.name,
                        target_workflow_id=target.id,
                        target_workflow_name=target.name,
                        score=result.score,
                        compatible=result.compatible,
                        matched_fields=len(result.matched_fields),
                    ))

        suggestions.sort(key=lambda s: s.score, reverse=True)
        self._suggest_cache = suggestions[:self.config.suggest_limit]
        self._suggest_cached_at = now
        self._suggest_catalog = catalog
        logger.info(f"Computed {len(self._suggest_cache)} pipeline suggestions")
        return self._suggest_cache
