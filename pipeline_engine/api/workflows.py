# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Catalog API Routes

Read-only access to published workflow descriptors.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends

from pipeline_engine.core.dependencies import get_catalog_service
from pipeline_engine.services.catalog_service import CatalogService

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.get("")
async def list_workflows(
    query: Optional[str] = None,
    category: Optional[str] = None,
    service: CatalogService = Depends(get_catalog_service)
) -> Dict[str, Any]:
    """List published workflows"""
    workflows = service.list_workflows(query=query, category=category)
    return {
        "workflows": [w.model_dump(by_alias=True) for w in workflows],
        "total": len(workflows),
    }


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    service: CatalogService = Depends(get_catalog_service)
) -> Dict[str, Any]:
    """Get a workflow descriptor"""
    return service.get_workflow(workflow_id).model_dump(by_alias=True)
