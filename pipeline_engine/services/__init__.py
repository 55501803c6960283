# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Service layer for the pipeline engine.

Services hold business logic; API routers only translate HTTP.
"""

from .catalog_service import CatalogService
from .pipeline_service import PipelineService

__all__ = ["CatalogService", "PipelineService"]
