# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Composition Models

Pydantic models for workflow descriptors, field mappings and pipelines.
JSON field names are camelCase; constructors accept either spelling.
"""

from typing import List, Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ObjectSchema(BaseModel):
    """Normalized flat object schema: field name -> primitive type, in declaration order"""
    properties: Dict[str, str] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.properties


class WorkflowDescriptor(CamelModel):
    """A published, priced workflow as seen by the composer"""
    id: str
    name: str
    description: str = ""
    category: str = ""
    input_schema: Optional[Dict[str, Any]] = None
    output_schema: Optional[Dict[str, Any]] = None
    price_usdc: int = 0  # smallest currency unit
    total_executions: int = 0
    successful_executions: int = 0
    endpoint: Optional[str] = None  # invocation URL
    owner_address: Optional[str] = None
    published: bool = True


class FieldMapping(CamelModel):
    """target.target_field is filled from the producing step's source_field"""
    source_field: str
    target_field: str
    confidence: float = Field(ge=0.0, le=1.0)
    reason: Optional[str] = None  # exact | fuzzy_name | type_coercion


class CompatibilityResult(CamelModel):
    """Verdict of matching one output schema against one input schema"""
    compatible: bool
    score: float = Field(ge=0.0, le=1.0)
    matched_fields: List[FieldMapping] = Field(default_factory=list)
    unmatched_required: List[str] = Field(default_factory=list)


class CompatibilityReport(CompatibilityResult):
    """CompatibilityResult plus every candidate match ranked by confidence"""
    suggestions: List[FieldMapping] = Field(default_factory=list)


class StepInputRef(CamelModel):
    """Reference to a named output field of an earlier step, by step id"""
    source: str
    field: str


class PipelineStep(CamelModel):
    """One workflow invocation inside a pipeline"""
    id: str
    workflow_id: str
    position: int = Field(ge=0)
    workflow_name: Optional[str] = None
    input_mapping: Optional[Dict[str, StepInputRef]] = None


class ProposedPipeline(CamelModel):
    """Output of composition; not yet persisted"""
    name: str
    description: str
    steps: List[PipelineStep]
    total_price: int
    score: float
    reasoning: str


class Pipeline(CamelModel):
    """A persisted, executable pipeline"""
    id: str
    name: str
    description: str
    owner_address: str
    steps: List[PipelineStep]
    total_price: int
    is_active: bool = True
    execution_count: int = 0
    created_at: str
    updated_at: str
