# Copyright (C) 2025 Intel Corporation
# SPDX-License-Identifier: Apache-2.0

"""Unit Tests - Field name mapping."""

import pytest

from bodyrig.device.field_mapper import FIELD_TABLE, to_internal, to_wire, validate_field_table


class TestFieldMapper:
    """Tests for wire to internal field translation."""

    def test_maps_device_fields(self):
        assert to_internal({"shoulder_height": 142.0, "name": "Ada"}) == {"shoulderHeight": 142.0, "name": "Ada"}

    def test_unknown_keys_pass_through(self):
        assert to_internal({"battery": 3}) == {"battery": 3}

    def test_none_maps_to_none(self):
        assert to_internal(None) is None
        assert to_wire(None) is None

    def test_empty_record(self):
        assert to_internal({}) == {}

    def test_mapping_is_idempotent(self):
        """Mapping an already mapped record changes nothing."""
        record = {wire: i for i, wire in enumerate(FIELD_TABLE)} | {"extra": True}
        once = to_internal(record)
        assert to_internal(once) == once

    def test_to_wire_inverts_to_internal(self):
        record = {wire: float(i) for i, wire in enumerate(FIELD_TABLE)}
        assert to_wire(to_internal(record)) == record

    def test_table_is_valid(self):
        validate_field_table()


class TestValidateFieldTable:
    """Tests for rejecting field tables that cannot be applied safely."""

    def test_rejects_duplicate_targets(self):
        with pytest.raises(ValueError, match="same internal name"):
            validate_field_table({"hip": "hipHeight", "hip_height": "hipHeight"})

    def test_rejects_chained_names(self):
        with pytest.raises(ValueError, match="also a wire name"):
            validate_field_table({"a": "b", "b": "c"})

    def test_accepts_identity_entries(self):
        validate_field_table({"name": "name", "crown_height": "crownHeight"})
