# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Assembler

Turns an ordered workflow selection plus pairwise compatibility results into
pipeline steps. Step ids are issued before any mapping is built, and every
mapping addresses its producer by id.
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .models import (
    WorkflowDescriptor,
    CompatibilityResult,
    PipelineStep,
    StepInputRef,
)
from .schema_checker import check_compatibility
from .matcher import DEFAULT_FUZZY_MAX_DISTANCE
from .validation import validate_pipeline_steps

DEFAULT_MATERIALIZE_THRESHOLD = 0.5


@dataclass
class AssembledPlan:
    """Steps plus the numbers the plan scorer needs"""
    steps: List[PipelineStep]
    pair_scores: List[float] = field(default_factory=list)
    total_price: int = 0


def check_adjacent_pairs(
    selected: Sequence[WorkflowDescriptor],
    max_distance: int = DEFAULT_FUZZY_MAX_DISTANCE,
) -> List[CompatibilityResult]:
    """Local compatibility of each (workflow_i output, workflow_i+1 input) pair"""
    return [
        check_compatibility(producer.output_schema, consumer.input_schema, max_distance)
        for producer, consumer in zip(selected, selected[1:])
    ]


def build_input_mapping(
    result: CompatibilityResult,
    source_step_id: str,
    threshold: float = DEFAULT_MATERIALIZE_THRESHOLD,
) -> Dict[str, StepInputRef]:
    """Materialize matches at or above threshold; weaker matches are never wired"""
    return {
        match.target_field: StepInputRef(source=source_step_id, field=match.source_field)
        for match in result.matched_fields
        if match.confidence >= threshold
    }


def calculate_total_price(selected: Sequence[WorkflowDescriptor]) -> int:
    """Sum of workflow prices, once per step (no de-duplication)"""
    return sum(workflow.price_usdc for workflow in selected)


def assemble_pipeline(
    selected: Sequence[WorkflowDescriptor],
    pair_results: Sequence[CompatibilityResult],
    threshold: float = DEFAULT_MATERIALIZE_THRESHOLD,
) -> AssembledPlan:
    """
    Assemble steps for the selected workflows.

    pair_results[i] must describe selected[i] -> selected[i + 1].
    """
    if len(pair_results) != max(len(selected) - 1, 0):
        raise ValueError(
            f"Expected {max(len(selected) - 1, 0)} pairwise results, got {len(pair_results)}"
        )

    # Identities first, so mappings can reference them
    step_ids = [str(uuid.uuid4()) for _ in selected]

    mappings: Dict[int, Dict[str, StepInputRef]] = {}
    for i, result in enumerate(pair_results):
        mapping = build_input_mapping(result, step_ids[i], threshold)
        if mapping:
            mappings[i + 1] = mapping

    steps = [
        PipelineStep(
            id=step_ids[idx],
            workflow_id=workflow.id,
            workflow_name=workflow.name,
            position=idx,
            input_mapping=mappings.get(idx),
        )
        for idx, workflow in enumerate(selected)
    ]

    if steps:
        validate_pipeline_steps(steps)

    return AssembledPlan(
        steps=steps,
        pair_scores=[result.score for result in pair_results],
        total_price=calculate_total_price(selected),
    )
