# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Schema Compatibility Scorer

Aggregates field matches of an output schema against an input schema into a
single verdict. Malformed schemas are treated as empty and never raise.
"""

from typing import Any, List, Union

from .models import ObjectSchema, FieldMapping, CompatibilityResult, CompatibilityReport
from .matcher import match_fields, DEFAULT_FUZZY_MAX_DISTANCE

SchemaLike = Union[ObjectSchema, dict, None]


def normalize_schema(raw: Any) -> ObjectSchema:
    """
    Normalize a raw JSON-schema-like object into an ObjectSchema.

    Accepts property values as either a type name ("number") or a
    JSON-schema property ({"type": "number"}). Anything that is not an
    object schema with a properties mapping normalizes to an empty schema.
    """
    if isinstance(raw, ObjectSchema):
        return raw
    if not isinstance(raw, dict):
        return ObjectSchema()

    schema_type = raw.get("type", "object")
    properties = raw.get("properties")
    if schema_type != "object" or not isinstance(properties, dict):
        return ObjectSchema()

    normalized = {}
    for name, prop in properties.items():
        if isinstance(prop, str):
            normalized[str(name)] = prop
        elif isinstance(prop, dict) and isinstance(prop.get("type"), str):
            normalized[str(name)] = prop["type"]

    required = raw.get("required")
    if not isinstance(required, list):
        required = []

    return ObjectSchema(
        properties=normalized,
        required=[r for r in required if isinstance(r, str)],
    )


def check_compatibility(
    output_schema: SchemaLike,
    input_schema: SchemaLike,
    max_distance: int = DEFAULT_FUZZY_MAX_DISTANCE,
) -> CompatibilityResult:
    """
    Check whether output_schema can feed input_schema.

    - score: matched target fields / declared target fields
    - compatible: every required target field has a match
    """
    source = normalize_schema(output_schema)
    target = normalize_schema(input_schema)

    # Nothing to fill
    if target.is_empty:
        return CompatibilityResult(compatible=True, score=1.0)

    if source.is_empty:
        return CompatibilityResult(
            compatible=not target.required,
            score=0.0,
            unmatched_required=list(target.required),
        )

    matched = match_fields(source, target, max_distance)
    matched_targets = {m.target_field for m in matched}
    unmatched_required = [r for r in target.required if r not in matched_targets]

    return CompatibilityResult(
        compatible=not unmatched_required,
        score=len(matched) / len(target.properties),
        matched_fields=matched,
        unmatched_required=unmatched_required,
    )


def rank_suggestions(matches: List[FieldMapping]) -> List[FieldMapping]:
    """Matches ordered by confidence, highest first; ties keep declaration order"""
    return sorted(matches, key=lambda m: m.confidence, reverse=True)


def check_compatibility_report(
    output_schema: SchemaLike,
    input_schema: SchemaLike,
    max_distance: int = DEFAULT_FUZZY_MAX_DISTANCE,
) -> CompatibilityReport:
    """check_compatibility plus ranked suggestions, for interactive builders"""
    result = check_compatibility(output_schema, input_schema, max_distance)
    return CompatibilityReport(
        **result.model_dump(),
        suggestions=rank_suggestions(result.matched_fields),
    )


def suggest_field_mappings(output_schema: SchemaLike, input_schema: SchemaLike) -> List[FieldMapping]:
    """Convenience wrapper returning only the ranked suggestions"""
    return check_compatibility_report(output_schema, input_schema).suggestions
