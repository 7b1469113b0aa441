# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Translation between the rig's snake_case field names and the internal camelCase names."""

from collections.abc import Mapping
from typing import Any

FIELD_TABLE: Mapping[str, str] = {
    "name": "name",
    "age": "age",
    "weight": "weight",
    "crown_height": "crownHeight",
    "shoulder_height": "shoulderHeight",
    "elbow_reach": "elbowReach",
    "hip_height": "hipHeight",
    "hand_reach": "handReach",
    "knee_height": "kneeHeight",
    "ankle_height": "ankleHeight",
}

_INVERSE_TABLE: Mapping[str, str] = {internal: wire for wire, internal in FIELD_TABLE.items()}


def validate_field_table(table: Mapping[str, str] = FIELD_TABLE) -> None:
    """
    Check that a field table can be applied and inverted safely.

    The table must be injective, and an internal name may only appear as a wire name
    when it maps to itself. Otherwise mapping an internal record again would rename it.

    Raises:
        ValueError: If the table violates either rule.
    """
    internal_names = list(table.values())
    if len(set(internal_names)) != len(internal_names):
        raise ValueError("field table maps two wire names to the same internal name")
    for internal in internal_names:
        if internal in table and table[internal] != internal:
            raise ValueError(f"internal name {internal!r} is also a wire name for {table[internal]!r}")


def to_internal(record: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Rename wire fields to internal names. Unknown keys are kept as they are."""
    if record is None:
        return None
    return {FIELD_TABLE.get(key, key): value for key, value in record.items()}


def to_wire(record: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Rename internal fields back to wire names. Unknown keys are kept as they are."""
    if record is None:
        return None
    return {_INVERSE_TABLE.get(key, key): value for key, value in record.items()}


validate_field_table()
