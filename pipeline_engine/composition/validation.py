# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pipeline Validation

Structural checks run when a pipeline is constructed or executed.
"""

from typing import List, Sequence

from .models import PipelineStep
from .exceptions import PipelineValidationError


def validate_pipeline_steps(steps: Sequence[PipelineStep]) -> List[PipelineStep]:
    """
    Validate step identities, positions and input mappings.

    Returns steps sorted by position.

    Raises PipelineValidationError if:
    - there are no steps
    - step ids repeat
    - positions are not exactly 0..n-1
    - a mapping references an unknown step, the step itself, or a later step
    """
    # 1. Empty pipeline check
    if len(steps) == 0:
        raise PipelineValidationError("Pipeline must have at least one step", field="steps")

    # 2. Duplicate step IDs
    step_ids = [step.id for step in steps]
    if len(step_ids) != len(set(step_ids)):
        duplicates = {sid for sid in step_ids if step_ids.count(sid) > 1}
        raise PipelineValidationError(f"Duplicate step IDs found: {sorted(duplicates)}", field="steps")

    # 3. Contiguous 0-based positions
    positions = sorted(step.position for step in steps)
    if positions != list(range(len(steps))):
        raise PipelineValidationError(
            f"Step positions must be a contiguous sequence starting at 0, got {positions}",
            field="steps.position"
        )

    # 4. Mapping sources must be strictly earlier steps
    position_by_id = {step.id: step.position for step in steps}
    for step in steps:
        for target_field, ref in (step.input_mapping or {}).items():
            field = f"steps[{step.id}].inputMapping.{target_field}"
            if ref.source not in position_by_id:
                raise PipelineValidationError(
                    f"Input mapping references non-existent step: {ref.source}",
                    field=field,
                    step_id=step.id,
                )
            if ref.source == step.id:
                raise PipelineValidationError(
                    f"Step cannot map input from itself: {step.id}",
                    field=field,
                    step_id=step.id,
                )
            if position_by_id[ref.source] >= step.position:
                raise PipelineValidationError(
                    f"Input mapping references a step that does not run earlier: {ref.source}",
                    field=field,
                    step_id=step.id,
                )

    return sorted(steps, key=lambda s: s.position)
