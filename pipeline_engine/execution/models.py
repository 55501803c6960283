# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Models

Pydantic models for pipeline execution records.
"""

from enum import Enum
from typing import List, Dict, Any, Optional
from pydantic import Field

from pipeline_engine.composition.models import CamelModel


class ExecutionStatus(str, Enum):
    """running is the only non-terminal status"""
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class PipelineStepResult(CamelModel):
    """Outcome of one step; appended in execution order, never retracted"""
    step_id: str
    workflow_id: str
    workflow_name: Optional[str] = None
    position: Optional[int] = None
    success: bool
    output: Optional[Dict[str, Any]] = None
    duration: Optional[int] = None  # ms
    error: Optional[str] = None


class PipelineExecution(CamelModel):
    """Execution record returned by POST /pipelines/{id}/execute"""
    execution_id: str
    pipeline_id: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    step_results: List[PipelineStepResult] = Field(default_factory=list)
    final_output: Optional[Dict[str, Any]] = None
    duration: int = 0  # ms
    trigger_input: Dict[str, Any] = Field(default_factory=dict)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class InvocationResult(CamelModel):
    """What a workflow invocation returned"""
    success: bool
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class ExecuteRequest(CamelModel):
    """Request body for POST /pipelines/{id}/execute"""
    trigger_input: Dict[str, Any] = Field(default_factory=dict)
