# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Composition Exceptions

Raised only for programming-contract violations in pipeline structure.
Incompatibility and empty compositions are ordinary results, not errors.
"""

from typing import Optional

from pipeline_engine.core.errors import ValidationError


class PipelineValidationError(ValidationError):
    """Pipeline step structure is invalid"""
    def __init__(self, message: str, field: Optional[str] = None, step_id: Optional[str] = None):
        details = {"step_id": step_id} if step_id else None
        super().__init__(message, field=field, details=details)
        self.step_id = step_id
