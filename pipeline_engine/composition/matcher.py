# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Field Matcher

Proposes source -> target field mappings in three tiers:
exact (1.0), fuzzy name (0.8), type coercion (0.5).
"""

from typing import List, Optional

from .models import ObjectSchema, FieldMapping
from .type_compat import are_compatible

EXACT_CONFIDENCE = 1.0
FUZZY_CONFIDENCE = 0.8
COERCION_CONFIDENCE = 0.5

DEFAULT_FUZZY_MAX_DISTANCE = 3


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit-cost insert, delete and substitute"""
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current

    return previous[-1]


def _exact_match(source: ObjectSchema, target_field: str, target_type: str) -> Optional[FieldMapping]:
    if source.properties.get(target_field) == target_type:
        return FieldMapping(
            source_field=target_field,
            target_field=target_field,
            confidence=EXACT_CONFIDENCE,
            reason="exact",
        )
    return None


def _fuzzy_match(
    source: ObjectSchema,
    target_field: str,
    target_type: str,
    max_distance: int,
) -> Optional[FieldMapping]:
    best_field = None
    best_distance = max_distance + 1

    for source_field, source_type in source.properties.items():
        if source_type != target_type:
            continue
        distance = levenshtein(source_field, target_field)
        # strict < keeps the first-declared field on ties
        if distance < best_distance:
            best_field = source_field
            best_distance = distance

    if best_field is None:
        return None

    return FieldMapping(
        source_field=best_field,
        target_field=target_field,
        confidence=FUZZY_CONFIDENCE,
        reason="fuzzy_name",
    )


def _coercion_match(source: ObjectSchema, target_field: str, target_type: str) -> Optional[FieldMapping]:
    for source_field, source_type in source.properties.items():
        if are_compatible(source_type, target_type):
            return FieldMapping(
                source_field=source_field,
                target_field=target_field,
                confidence=COERCION_CONFIDENCE,
                reason="type_coercion",
            )
    return None


def match_field(
    source: ObjectSchema,
    target_field: str,
    target_type: str,
    max_distance: int = DEFAULT_FUZZY_MAX_DISTANCE,
) -> Optional[FieldMapping]:
    """Best mapping for a single target field, or None if no tier applies"""
    return (
        _exact_match(source, target_field, target_type)
        or _fuzzy_match(source, target_field, target_type, max_distance)
        or _coercion_match(source, target_field, target_type)
    )


def match_fields(
    source: ObjectSchema,
    target: ObjectSchema,
    max_distance: int = DEFAULT_FUZZY_MAX_DISTANCE,
) -> List[FieldMapping]:
    """
    Match every target field against the source schema.

    Returns one mapping per matched target field, in target declaration order.
    Unmatched target fields are omitted.
    """
    matches = []
    for target_field, target_type in target.properties.items():
        mapping = match_field(source, target_field, target_type, max_distance)
        if mapping is not None:
            matches.append(mapping)
    return matches
