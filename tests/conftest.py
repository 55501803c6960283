# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared test fixtures: workflow descriptors, catalogs and temp directories.
"""

import json
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any, Dict, List, Optional

from pipeline_engine.composition.models import WorkflowDescriptor


def object_schema(properties: Dict[str, str], required: Optional[List[str]] = None) -> Dict[str, Any]:
    """Build a flat JSON object schema"""
    return {"type": "object", "properties": properties, "required": required or []}


def make_workflow(workflow_id: str, **overrides) -> WorkflowDescriptor:
    """Workflow descriptor with sensible defaults"""
    data = {
        "id": workflow_id,
        "name": workflow_id.replace("-", " ").title(),
        "description": "",
        "category": "",
        "input_schema": object_schema({}),
        "output_schema": object_schema({}),
        "price_usdc": 10000,
        "total_executions": 100,
        "endpoint": f"http://workflows.test/{workflow_id}",
        "owner_address": "0x" + "1" * 40,
    }
    data.update(overrides)
    return WorkflowDescriptor(**data)


@pytest.fixture
def price_feed():
    """Price oracle workflow producing price/asset"""
    return make_workflow(
        "eth-price-feed",
        name="ETH Price Feed",
        description="Reads the ETH price from an oracle",
        input_schema=object_schema({"asset": "string"}, ["asset"]),
        output_schema=object_schema({"price": "number", "asset": "string"}),
        price_usdc=10000,
        total_executions=500,
    )


@pytest.fixture
def price_alert():
    """Alert workflow consuming a price"""
    return make_workflow(
        "price-alert",
        name="Threshold Alert",
        description="Sends a webhook notification",
        input_schema=object_schema({"price": "number", "threshold": "number"}, ["price"]),
        output_schema=object_schema({"alerted": "boolean", "message": "string"}),
        price_usdc=5000,
        total_executions=200,
    )


@pytest.fixture
def catalog(price_feed, price_alert):
    """Two-workflow catalog"""
    return [price_feed, price_alert]


@pytest.fixture
def temp_dir():
    """Temporary directory removed after the test"""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def catalog_dir(temp_dir, catalog):
    """Catalog directory holding the two-workflow catalog as JSON"""
    directory = temp_dir / "catalog"
    directory.mkdir()
    (directory / "workflows.json").write_text(
        json.dumps([w.model_dump(by_alias=True) for w in catalog], indent=2)
    )
    return directory
