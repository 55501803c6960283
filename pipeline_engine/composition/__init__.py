# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline composition: schema matching, candidate selection, assembly and scoring.
"""

from .models import (
    WorkflowDescriptor,
    FieldMapping,
    CompatibilityResult,
    CompatibilityReport,
    StepInputRef,
    PipelineStep,
    ProposedPipeline,
    Pipeline,
)
from .schema_checker import check_compatibility, check_compatibility_report
from .capabilities import parse_goal_capabilities, goal_needs_pipeline
from .composer import PipelineComposer
from .validation import validate_pipeline_steps
from .exceptions import PipelineValidationError

__all__ = [
    "WorkflowDescriptor",
    "FieldMapping",
    "CompatibilityResult",
    "CompatibilityReport",
    "StepInputRef",
    "PipelineStep",
    "ProposedPipeline",
    "Pipeline",
    "check_compatibility",
    "check_compatibility_report",
    "parse_goal_capabilities",
    "goal_needs_pipeline",
    "PipelineComposer",
    "validate_pipeline_steps",
    "PipelineValidationError",
]
