"""
Tests for pre-export validation.
"""

from dataclasses import replace

import pytest

from multisampler.model import ExportValidationError, SampleFileRef, VelocityRange
from multisampler.presets import ValidationIssue, validate_mapping


def codes(issues):
    return [issue.code for issue in issues]


class TestValidMappings:
    """Mappings that pass."""

    def test_populated_model_with_resolver(self, populated_model, resolver):
        is_valid, issues = validate_mapping(populated_model, resolver=resolver)
        assert is_valid
        assert issues == []

    def test_with_plan(self, populated_model, resolver):
        plan = resolver.resolve_all(populated_model.parts())
        assert validate_mapping(populated_model, plan=plan) == (True, [])

    def test_strict_passes_silently(self, populated_model, resolver):
        assert validate_mapping(populated_model, resolver=resolver, strict=True)[0]


class TestEmptyAndPaths:
    """Empty mappings and missing paths."""

    def test_empty_model(self, model, resolver):
        """128 keys, no layers."""
        is_valid, issues = validate_mapping(model, resolver=resolver)
        assert not is_valid
        assert codes(issues) == ["EmptyMapping"]

    def test_layers_without_parts_are_empty(self, model, resolver):
        model.add_velocity_layer(60)
        assert codes(validate_mapping(model, resolver=resolver)[1]) == ["EmptyMapping"]

    def test_no_plan_no_resolver(self, model, kick_ref):
        model.add_sample(60, kick_ref)
        is_valid, issues = validate_mapping(model)
        assert codes(issues) == ["UnresolvedPath"]
        assert issues[0].key_id == 60

    def test_plan_missing_part(self, populated_model, resolver):
        plan = resolver.resolve_all(populated_model.parts())
        del plan.entries[2]
        issues = validate_mapping(populated_model, plan=plan)[1]
        assert codes(issues) == ["UnresolvedPath"]
        assert issues[0].part_id == 2

    def test_duplicate_names(self, model, resolver):
        model.add_sample(60, SampleFileRef("/a/kick.wav", 44100.0, 10))
        model.add_sample(61, SampleFileRef("/b/kick.wav", 44100.0, 10))
        assert codes(validate_mapping(model, resolver=resolver)[1]) == ["DuplicateSampleName"]


class TestRangeChecks:
    """Out-of-range values are reported, never clamped."""

    def _corrupt(self, model, part_id, **changes):
        model._parts[part_id] = replace(model.part(part_id), **changes)

    def test_reversed_key_range(self, model, kick_ref, resolver):
        part = model.add_sample(60, kick_ref)
        self._corrupt(model, part.part_id, key_range_min=70, key_range_max=60)
        issues = validate_mapping(model, resolver=resolver)[1]
        assert codes(issues) == ["OutOfRangeValue"]
        assert model.part(part.part_id).key_range_min == 70

    def test_velocity_out_of_bounds(self, model, kick_ref, resolver):
        part = model.add_sample(60, kick_ref)
        self._corrupt(model, part.part_id, velocity_range=VelocityRange(0, 130, 0, 127))
        assert "OutOfRangeValue" in codes(validate_mapping(model, resolver=resolver)[1])

    def test_layer_range_checked(self, model, kick_ref, resolver):
        part = model.add_sample(60, kick_ref)
        layer, _ = model.owner_of(part.part_id)
        layer.velocity_range = VelocityRange(50, 10, 10, 50)
        issues = validate_mapping(model, resolver=resolver)[1]
        assert codes(issues) == ["OutOfRangeValue"]
        assert issues[0].layer_id == layer.layer_id

    def test_root_key_outside_range(self, model, kick_ref, resolver):
        """Reported, not clamped."""
        part = model.add_sample(60, kick_ref)
        layer, _ = model.owner_of(part.part_id)
        model.apply_pitch_settings(layer.layer_id, True, root_key=90,
                                   key_range_min=48, key_range_max=72)
        issues = validate_mapping(model, resolver=resolver)[1]
        assert codes(issues) == ["OutOfRangeValue"]
        assert "root key 90" in issues[0].message
        assert model.part(part.part_id).original_root_key == 90

    def test_segment_past_end(self, model, kick_ref, resolver):
        part = model.add_sample(60, kick_ref)
        self._corrupt(model, part.part_id, segment_end=5000)
        issues = validate_mapping(model, resolver=resolver)[1]
        assert codes(issues) == ["OutOfRangeValue"]
        assert issues[0].part_id == part.part_id

    def test_checks_run_in_order(self, model, kick_ref, resolver):
        """Range issues come before segment issues."""
        part = model.add_sample(60, kick_ref)
        self._corrupt(model, part.part_id, segment_end=5000, key_range_max=200)
        assert codes(validate_mapping(model, resolver=resolver)[1]) == [
            "OutOfRangeValue", "OutOfRangeValue"]


class TestIdentityChecks:
    """Identity collisions and dangling slots."""

    def test_part_in_two_slots(self, model, kick_ref, resolver):
        part = model.add_sample(60, kick_ref)
        other = model.add_velocity_layer(61)
        other.slots.append(part.part_id)
        issues = validate_mapping(model, resolver=resolver)[1]
        assert codes(issues) == ["IdentityCollision"]

    def test_dangling_slot(self, model, kick_ref, resolver):
        model.add_sample(60, kick_ref)
        model.layers_for_key(60)[0].slots.append(99)
        issues = validate_mapping(model, resolver=resolver)[1]
        assert codes(issues) == ["IdentityCollision"]
        assert issues[0].part_id == 99

    def test_unplaced_part(self, model, kick_ref, resolver):
        part = model.add_sample(60, kick_ref)
        model.layers_for_key(60)[0].slots[0] = None
        issues = validate_mapping(model, resolver=resolver)[1]
        assert "IdentityCollision" in codes(issues)
        assert "EmptyMapping" in codes(issues)


class TestBatchingAndStrict:
    """All findings are returned together."""

    def test_batches_everything(self, model, resolver):
        model.add_sample(60, SampleFileRef("/a/kick.wav", 44100.0, 10))
        model.add_sample(61, SampleFileRef("/b/kick.wav", 44100.0, 10))
        model._parts[1] = replace(model.part(1), segment_end=50)
        issues = validate_mapping(model, resolver=resolver)[1]
        assert codes(issues) == ["OutOfRangeValue", "DuplicateSampleName"]

    def test_strict_raises_with_all_issues(self, model, resolver):
        with pytest.raises(ExportValidationError) as exc:
            validate_mapping(model, resolver=resolver, strict=True)
        assert codes(exc.value.issues) == ["EmptyMapping"]

    def test_issue_to_error(self):
        issue = ValidationIssue("OutOfRangeValue", "bad", key_id=3, part_id=7)
        error = issue.to_error()
        assert error.code == "OutOfRangeValue"
        assert (error.key_id, error.part_id) == (3, 7)
        assert ValidationIssue.from_error(error) == issue
