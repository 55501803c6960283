# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the pipeline engine.

Provides FastAPI dependencies for services and utilities. Services are
created once in create_app() and live on app.state.
"""

from fastapi import Request

from pipeline_engine.core.config import Config, get_config


# Configuration dependency
def get_current_config(request: Request) -> Config:
    """
    Get current application configuration.

    Returns:
        Config: The app's configuration, or the global one
    """
    return getattr(request.app.state, "config", None) or get_config()


# Service dependencies

def get_catalog_service(request: Request):
    """Get CatalogService instance."""
    # Initialized at startup
    return request.app.state.catalog_service


def get_pipeline_service(request: Request):
    """Get PipelineService instance."""
    return request.app.state.pipeline_service


def get_composer(request: Request):
    """Get PipelineComposer instance."""
    return request.app.state.composer


def get_metrics(request: Request):
    """Get PipelineMetrics instance."""
    return request.app.state.metrics


# Pagination dependency
class PaginationParams:
    """Pagination parameters for list endpoints."""

    def __init__(self, page: int = 1, limit: int = 20):
        """
        Initialize pagination parameters.

        Args:
            page: 1-based page number
            limit: Maximum number of records to return
        """
        self.page = max(1, page)
        self.limit = min(100, max(1, limit))  # Cap at 100


def get_pagination_params(
    page: int = 1,
    limit: int = 20
) -> PaginationParams:
    """
    Get pagination parameters from query string.

    Returns:
        PaginationParams: Pagination parameters
    """
    return PaginationParams(page=page, limit=limit)
