# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline API Routes

Composition, compatibility checks, CRUD and execution for pipelines.
Static paths (/compose, /suggest, /metrics, ...) are declared before /{id}.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Request, status
from pydantic import Field

from pipeline_engine.core.config import Config
from pipeline_engine.core.dependencies import (
    get_catalog_service,
    get_composer,
    get_current_config,
    get_metrics,
    get_pagination_params,
    get_pipeline_service,
    PaginationParams,
)
from pipeline_engine.core.logging import get_api_logger
from pipeline_engine.composition.capabilities import goal_needs_pipeline, parse_goal_capabilities
from pipeline_engine.composition.composer import PipelineComposer
from pipeline_engine.composition.models import CamelModel
from pipeline_engine.composition.schema_checker import check_compatibility_report
from pipeline_engine.execution.metrics import PipelineMetrics
from pipeline_engine.execution.models import ExecuteRequest
from pipeline_engine.services.catalog_service import CatalogService
from pipeline_engine.services.owner_auth import require_pipeline_owner
from pipeline_engine.services.pipeline_service import (
    OWNER_ADDRESS_PATTERN,
    PipelineCreateRequest,
    PipelineService,
    PipelineUpdateRequest,
)

router = APIRouter(prefix="/pipelines", tags=["pipelines"])
logger = get_api_logger()


class ComposeRequest(CamelModel):
    goal: str = Field(min_length=1, max_length=1000)
    owner_address: Optional[str] = Field(default=None, pattern=OWNER_ADDRESS_PATTERN)


class CompatibilityCheckRequest(CamelModel):
    source_workflow_id: str
    target_workflow_id: str


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_pipeline(
    body: PipelineCreateRequest,
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """Create a pipeline from explicit steps"""
    pipeline = await service.create_pipeline(body)
    return pipeline.model_dump(by_alias=True)


@router.get("")
async def list_pipelines(
    owner: Optional[str] = None,
    active: Optional[bool] = None,
    pagination: PaginationParams = Depends(get_pagination_params),
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """List pipelines, newest first"""
    result = await service.list_pipelines(
        owner=owner,
        active=active,
        page=pagination.page,
        limit=pagination.limit,
    )
    result["pipelines"] = [p.model_dump(by_alias=True) for p in result["pipelines"]]
    return result


@router.post("/compose")
async def compose_pipeline(
    body: ComposeRequest,
    request: Request,
    composer: PipelineComposer = Depends(get_composer),
    catalog: CatalogService = Depends(get_catalog_service),
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """
    Compose a pipeline proposal for a natural-language goal.

    proposal is null when no workflow satisfies the goal; when ownerAddress
    is given the proposal is also persisted.
    """
    workflows = catalog.list_workflows()
    remote = getattr(request.app.state, "compatibility_client", None)

    if remote is not None:
        proposal = await composer.auto_compose_async(body.goal, workflows, remote.check)
    else:
        proposal = composer.auto_compose(body.goal, workflows)

    response: Dict[str, Any] = {
        "needsPipeline": goal_needs_pipeline(body.goal),
        "capabilities": parse_goal_capabilities(body.goal),
        "proposal": proposal.model_dump(by_alias=True) if proposal else None,
    }

    if proposal is not None and body.owner_address:
        pipeline = await service.create_pipeline(proposal, owner_address=body.owner_address)
        response["pipelineId"] = pipeline.id

    return response


@router.post("/check-compatibility")
async def check_compatibility(
    body: CompatibilityCheckRequest,
    config: Config = Depends(get_current_config),
    catalog: CatalogService = Depends(get_catalog_service)
) -> Dict[str, Any]:
    """Check whether the source workflow's output can feed the target's input"""
    source = catalog.get_workflow(body.source_workflow_id)
    target = catalog.get_workflow(body.target_workflow_id)

    report = check_compatibility_report(
        source.output_schema,
        target.input_schema,
        config.fuzzy_max_distance,
    )
    return report.model_dump(by_alias=True)


@router.get("/suggest")
async def suggest_pipelines(
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """Compatible workflow pairs across the catalog"""
    return {"suggestions": [s.model_dump(by_alias=True) for s in service.suggest_pairs()]}


@router.get("/metrics")
async def pipeline_metrics(
    metrics: PipelineMetrics = Depends(get_metrics)
) -> Dict[str, Any]:
    """In-process execution metrics"""
    return metrics.snapshot()


@router.get("/{id}")
async def get_pipeline(
    id: str,
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """Get a pipeline with its per-step price breakdown"""
    pipeline = await service.get_pipeline(id)
    return {
        **pipeline.model_dump(by_alias=True),
        "priceBreakdown": [item.model_dump(by_alias=True) for item in service.price_breakdown(pipeline.steps)],
    }


@router.put("/{id}")
async def update_pipeline(
    id: str,
    body: PipelineUpdateRequest,
    owner: str = Depends(require_pipeline_owner),
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """Update a pipeline (owner only)"""
    pipeline = await service.update_pipeline(id, body)
    return pipeline.model_dump(by_alias=True)


@router.delete("/{id}")
async def delete_pipeline(
    id: str,
    owner: str = Depends(require_pipeline_owner),
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, str]:
    """Deactivate a pipeline (owner only)"""
    await service.deactivate_pipeline(id)
    return {"message": "Pipeline deactivated"}


@router.post("/{id}/execute")
async def execute_pipeline(
    id: str,
    body: Optional[ExecuteRequest] = None,
    owner: str = Depends(require_pipeline_owner),
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """Execute a pipeline (owner only)"""
    trigger_input = body.trigger_input if body else {}
    logger.info(f"Executing pipeline {id} for owner {owner}")
    execution = await service.execute_pipeline(id, trigger_input)
    return execution.model_dump(mode="json", by_alias=True)


@router.get("/{id}/history")
async def pipeline_history(
    id: str,
    pagination: PaginationParams = Depends(get_pagination_params),
    service: PipelineService = Depends(get_pipeline_service)
) -> Dict[str, Any]:
    """Execution history, newest first"""
    result = await service.list_executions(id, page=pagination.page, limit=pagination.limit)
    result["executions"] = [e.model_dump(mode="json", by_alias=True) for e in result["executions"]]
    return result
