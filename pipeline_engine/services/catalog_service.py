# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Catalog Service

Read-only view of the published workflow catalog. Descriptors live on disk
as JSON or YAML files, one descriptor or a list of descriptors per file.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from pipeline_engine.core.errors import NotFoundError
from pipeline_engine.core.logging import get_service_logger
from pipeline_engine.composition.models import WorkflowDescriptor

logger = get_service_logger("catalog")

CATALOG_PATTERNS = ("*.json", "*.yaml", "*.yml")


class CatalogService:
    """
    Loads workflow descriptors from the catalog directory.

    Files are loaded once and cached; call reload() after editing the
    catalog on disk.
    """

    def __init__(self, catalog_dir: Path):
        self.catalog_dir = Path(catalog_dir)
        self.catalog_dir.mkdir(parents=True, exist_ok=True)
        self._workflows: Optional[Dict[str, WorkflowDescriptor]] = None
        logger.info(f"CatalogService initialized with directory: {catalog_dir}")

    def _read_file(self, file: Path) -> List[Dict[str, Any]]:
        text = file.read_text()
        data = json.loads(text) if file.suffix == ".json" else yaml.safe_load(text)
        if data is None:
            return []
        if isinstance(data, dict) and isinstance(data.get("workflows"), list):
            data = data["workflows"]
        return data if isinstance(data, list) else [data]

    def reload(self) -> Dict[str, WorkflowDescriptor]:
        """Re-read every catalog file; invalid files and entries are skipped"""
        workflows: Dict[str, WorkflowDescriptor] = {}
        files = sorted(f for pattern in CATALOG_PATTERNS for f in self.catalog_dir.glob(pattern))

        for file in files:
            try:
                entries = self._read_file(file)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning(f"Skipping invalid catalog file {file.name}: {e}")
                continue

            for entry in entries:
                try:
                    workflow = WorkflowDescriptor(**entry)
                except (TypeError, PydanticValidationError) as e:
                    logger.warning(f"Skipping invalid workflow in {file.name}: {e}")
                    continue
                if workflow.id in workflows:
                    logger.warning(f"Duplicate workflow id {workflow.id} in {file.name}, keeping first")
                    continue
                workflows[workflow.id] = workflow

        self._workflows = workflows
        logger.info(f"Loaded {len(workflows)} workflows from catalog")
        return workflows

    def catalog_map(self) -> Dict[str, WorkflowDescriptor]:
        """All descriptors keyed by id, published or not"""
        if self._workflows is None:
            self.reload()
        return self._workflows

    def list_workflows(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        published_only: bool = True,
    ) -> List[WorkflowDescriptor]:
        """List workflows, optionally filtered by text query and category"""
        workflows = list(self.catalog_map().values())

        if published_only:
            workflows = [w for w in workflows if w.published]
        if category:
            workflows = [w for w in workflows if w.category.lower() == category.lower()]
        if query:
            q = query.lower()
            workflows = [w for w in workflows if q in w.name.lower() or q in w.description.lower()]

        return workflows

    def get_workflow(self, workflow_id: str) -> WorkflowDescriptor:
        """Get a workflow descriptor by id"""
        workflow = self.catalog_map().get(workflow_id)
        if workflow is None:
            raise NotFoundError("Workflow", workflow_id)
        return workflow
