# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Engine - FastAPI application.

Composes catalog workflows into pipelines and executes them.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pipeline_engine import __version__
from pipeline_engine.api import pipelines, workflows
from pipeline_engine.core.config import Config, get_config
from pipeline_engine.core.errors import PipelineEngineError
from pipeline_engine.core.logging import get_logger
from pipeline_engine.composition.composer import PipelineComposer
from pipeline_engine.composition.remote import CompatibilityClient
from pipeline_engine.execution.events import PipelineEventLogger
from pipeline_engine.execution.executor import PipelineExecutor
from pipeline_engine.execution.invoker import HttpWorkflowInvoker, WorkflowInvoker
from pipeline_engine.execution.metrics import PipelineMetrics
from pipeline_engine.services.catalog_service import CatalogService
from pipeline_engine.services.pipeline_service import PipelineService

load_dotenv()

logger = get_logger("pipeline_engine.main")


def create_app(config: Optional[Config] = None, invoker: Optional[WorkflowInvoker] = None) -> FastAPI:
    """
    Build the application and its services.

    Args:
        config: Configuration (defaults to the global YAML config)
        invoker: Workflow invoker (defaults to HTTP)
    """
    config = config or get_config()

    app = FastAPI(title="Workflow Pipeline Engine", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify exact origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Services (shared across requests)
    metrics = PipelineMetrics()
    events = PipelineEventLogger(sink_url=config.event_sink_url, timeout=config.http_timeout)
    executor = PipelineExecutor(
        invoker=invoker or HttpWorkflowInvoker(timeout=config.http_timeout_long),
        events=events,
        metrics=metrics,
        step_timeout=config.step_timeout,
        pipeline_timeout=config.pipeline_timeout,
    )
    catalog = CatalogService(Path(config.catalog_path))

    app.state.config = config
    app.state.metrics = metrics
    app.state.catalog_service = catalog
    app.state.composer = PipelineComposer.from_config(config)
    app.state.pipeline_service = PipelineService(
        pipelines_dir=Path(config.pipelines_path),
        executions_dir=Path(config.executions_path),
        catalog=catalog,
        executor=executor,
        config=config,
    )
    app.state.compatibility_client = (
        CompatibilityClient(config.compatibility_api_url, timeout=config.http_timeout)
        if config.compatibility_api_url else None
    )

    @app.exception_handler(PipelineEngineError)
    async def pipeline_engine_error_handler(request: Request, exc: PipelineEngineError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(workflows.router)
    app.include_router(pipelines.router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": __version__,
            "workflows": len(catalog.catalog_map()),
        }

    @app.on_event("startup")
    async def startup():
        """Load the catalog and fail executions left running by a previous process"""
        catalog.reload()
        swept = await app.state.pipeline_service.sweep_stale_executions()
        logger.info(f"Pipeline engine started ({swept} stale execution(s) swept)")

    @app.on_event("shutdown")
    async def shutdown():
        await events.close()
        if isinstance(executor.invoker, HttpWorkflowInvoker):
            await executor.invoker.close()
        if app.state.compatibility_client is not None:
            await app.state.compatibility_client.close()

    return app


def run() -> None:
    """Serve the application with uvicorn"""
    import uvicorn

    config = get_config()
    uvicorn.run(create_app(config), host=config.service_host, port=config.service_port)


if __name__ == "__main__":
    run()
