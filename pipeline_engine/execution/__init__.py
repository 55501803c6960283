# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline execution: sequential step runner, invokers, events and metrics.
"""

from .models import ExecutionStatus, PipelineExecution, PipelineStepResult, InvocationResult
from .executor import PipelineExecutor, resolve_step_input
from .invoker import HttpWorkflowInvoker, WorkflowInvoker

__all__ = [
    "ExecutionStatus",
    "PipelineExecution",
    "PipelineStepResult",
    "InvocationResult",
    "PipelineExecutor",
    "resolve_step_input",
    "HttpWorkflowInvoker",
    "WorkflowInvoker",
]
