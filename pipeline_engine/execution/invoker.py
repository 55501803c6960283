# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Invoker

The executor treats a step invocation as a black box returning
success/output/error. HttpWorkflowInvoker is the network implementation.
"""

from typing import Any, Dict, Optional, Protocol

import httpx

from pipeline_engine.composition.models import WorkflowDescriptor
from .models import InvocationResult


class WorkflowInvoker(Protocol):
    async def invoke(self, workflow: WorkflowDescriptor, payload: Dict[str, Any]) -> InvocationResult:
        ...


class HttpWorkflowInvoker:
    """
    POSTs the resolved step input to the workflow's endpoint.

    Response handling:
    - {"success": ..., "output": ..., "error": ...} is taken as-is
    - any other JSON object is the step output
    - HTTP >= 400 is a failed step
    """

    def __init__(self, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def invoke(self, workflow: WorkflowDescriptor, payload: Dict[str, Any]) -> InvocationResult:
        if not workflow.endpoint:
            return InvocationResult(success=False, error=f"Workflow {workflow.id} has no invocation endpoint")

        response = await self.client.post(workflow.endpoint, json=payload)

        if response.status_code >= 400:
            return InvocationResult(
                success=False,
                error=f"HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            data = response.json()
        except ValueError:
            return InvocationResult(success=False, error="Workflow returned a non-JSON response")

        if isinstance(data, dict) and "success" in data:
            output = data.get("output")
            return InvocationResult(
                success=bool(data["success"]),
                output=output if isinstance(output, dict) else None,
                error=data.get("error"),
            )
        if isinstance(data, dict):
            return InvocationResult(success=True, output=data)
        return InvocationResult(success=True, output={"result": data})

    async def close(self) -> None:
        """Close HTTP client"""
        await self.client.aclose()
