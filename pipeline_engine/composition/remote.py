# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Remote Compatibility Client

Fetches pairwise compatibility from a running pipeline API instead of
checking cached descriptors locally. Fails soft: any transport or
decoding problem reads as "incompatible, score 0".
"""

from typing import Optional

import httpx

from pipeline_engine.core.logging import get_service_logger
from .models import WorkflowDescriptor, CompatibilityReport

logger = get_service_logger("compatibility-client")


class CompatibilityClient:
    """Calls POST {base_url}/pipelines/check-compatibility"""

    def __init__(self, base_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def check(self, source: WorkflowDescriptor, target: WorkflowDescriptor) -> CompatibilityReport:
        """Compatibility of source's output with target's input"""
        try:
            response = await self.client.post(
                f"{self.base_url}/pipelines/check-compatibility",
                json={"sourceWorkflowId": source.id, "targetWorkflowId": target.id},
            )
            if response.status_code >= 400:
                logger.warning(
                    f"Compatibility check {source.id} -> {target.id} returned HTTP {response.status_code}"
                )
                return CompatibilityReport(compatible=False, score=0.0)
            return CompatibilityReport.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Compatibility check {source.id} -> {target.id} failed: {e}")
            return CompatibilityReport(compatible=False, score=0.0)

    async def close(self) -> None:
        """Close HTTP client"""
        await self.client.aclose()
