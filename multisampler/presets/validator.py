"""
Pre-export validation of a mapping model.

Checks, in order:
    (a) key and velocity ranges within 0-127 and ordered; pitched root keys
        inside their key range
    (b) segments within their source file
    (c) identities: each part placed exactly once, no dangling slot ids
    (d) every part has a resolved path (via a PathPlan, or computed by a
        PathResolver, which also reports filename collisions)
and finally that something is mapped at all.

All findings are collected; nothing is clamped or repaired.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from multisampler.config import MIDI_MAX, MIDI_MIN, VELOCITY_MAX, VELOCITY_MIN
from multisampler.model import errors as mapping_errors
from multisampler.model.errors import ExportValidationError, MappingError
from multisampler.model.mapping import MappingModel, MultiSamplePart, VelocityRange
from multisampler.utils.logger import logger
from .path_resolver import PathPlan, PathResolver

_ERROR_CLASSES = {
    cls.code: cls for cls in (
        mapping_errors.InvalidKeyError,
        mapping_errors.UnsupportedFormatError,
        mapping_errors.DuplicateSampleNameError,
        mapping_errors.EmptyMappingError,
        mapping_errors.UnresolvedPathError,
        mapping_errors.OutOfRangeValueError,
        mapping_errors.IdentityCollisionError,
    )
}

OUT_OF_RANGE = mapping_errors.OutOfRangeValueError.code
IDENTITY = mapping_errors.IdentityCollisionError.code
UNRESOLVED = mapping_errors.UnresolvedPathError.code
EMPTY = mapping_errors.EmptyMappingError.code


@dataclass(frozen=True)
class ValidationIssue:
    """One blocking problem, with enough context to point at it."""
    code: str
    message: str
    key_id: Optional[int] = None
    layer_id: Optional[int] = None
    part_id: Optional[int] = None

    @classmethod
    def from_error(cls, error: MappingError) -> "ValidationIssue":
        return cls(error.code, error.message, error.key_id, error.layer_id, error.part_id)

    def to_error(self) -> MappingError:
        error_cls = _ERROR_CLASSES.get(self.code, MappingError)
        return error_cls(self.message, key_id=self.key_id, layer_id=self.layer_id, part_id=self.part_id)


def _check_velocity(vr: VelocityRange, label: str, **context) -> List[ValidationIssue]:
    issues = []
    values = (("min", vr.min), ("max", vr.max),
              ("crossfade_min", vr.crossfade_min), ("crossfade_max", vr.crossfade_max))
    for name, value in values:
        if not (VELOCITY_MIN <= value <= VELOCITY_MAX):
            issues.append(ValidationIssue(
                OUT_OF_RANGE, f"{label} velocity {name} must be {VELOCITY_MIN}-{VELOCITY_MAX}, got {value}",
                **context))
    if vr.min > vr.max:
        issues.append(ValidationIssue(
            OUT_OF_RANGE, f"{label} velocity min {vr.min} exceeds max {vr.max}", **context))
    return issues


def _check_part_ranges(part: MultiSamplePart, **context) -> List[ValidationIssue]:
    issues = []
    label = f"Part '{part.name}'"
    for name, value in (("key_range_min", part.key_range_min), ("key_range_max", part.key_range_max)):
        if not (MIDI_MIN <= value <= MIDI_MAX):
            issues.append(ValidationIssue(
                OUT_OF_RANGE, f"{label} {name} must be {MIDI_MIN}-{MIDI_MAX}, got {value}", **context))
    if part.key_range_min > part.key_range_max:
        issues.append(ValidationIssue(
            OUT_OF_RANGE, f"{label} key range {part.key_range_min}-{part.key_range_max} is reversed", **context))

    issues.extend(_check_velocity(part.velocity_range, label, **context))

    if part.is_pitched:
        root = part.original_root_key
        if root is None:
            issues.append(ValidationIssue(OUT_OF_RANGE, f"{label} is pitched but has no root key", **context))
        elif not (part.key_range_min <= root <= part.key_range_max):
            issues.append(ValidationIssue(
                OUT_OF_RANGE,
                f"{label} root key {root} outside key range {part.key_range_min}-{part.key_range_max}",
                **context))
    elif part.original_root_key is not None:
        issues.append(ValidationIssue(OUT_OF_RANGE, f"{label} is fixed-pitch but carries a root key", **context))
    return issues


def _check_segment(part: MultiSamplePart, **context) -> List[ValidationIssue]:
    if 0 <= part.segment_start <= part.segment_end <= part.frame_count:
        return []
    return [ValidationIssue(
        OUT_OF_RANGE,
        f"Part '{part.name}' segment {part.segment_start}-{part.segment_end} "
        f"outside source length {part.frame_count}",
        **context)]


def validate_mapping(model: MappingModel, plan: Optional[PathPlan] = None,
                     resolver: Optional[PathResolver] = None, strict: bool = False) -> tuple:
    """
    Validate a mapping before encoding.

    Args:
        model: Mapping to check
        plan: Already resolved paths (checked for completeness)
        resolver: Used to resolve paths when no plan is given
        strict: If True, raise ExportValidationError when anything is wrong

    Returns:
        (is_valid, issues)
    """
    issues: List[ValidationIssue] = []

    # (a) ranges
    for key in model.keys:
        for layer in key.layers:
            issues.extend(_check_velocity(layer.velocity_range, f"Layer {layer.layer_id}",
                                          key_id=key.midi_note, layer_id=layer.layer_id))

    placements: Dict[int, int] = {}
    placed_parts = []
    for key, layer, index, part_id in model.walk():
        context = dict(key_id=key.midi_note, layer_id=layer.layer_id, part_id=part_id)
        placements[part_id] = placements.get(part_id, 0) + 1
        if not model.has_part(part_id) or placements[part_id] > 1:
            continue
        part = model.part(part_id)
        placed_parts.append((part, context))
        issues.extend(_check_part_ranges(part, **context))

    # (b) segments
    for part, context in placed_parts:
        issues.extend(_check_segment(part, **context))

    # (c) identities
    for key, layer, index, part_id in model.walk():
        context = dict(key_id=key.midi_note, layer_id=layer.layer_id, part_id=part_id)
        if not model.has_part(part_id):
            issues.append(ValidationIssue(
                IDENTITY, f"Slot {index} of layer {layer.layer_id} references unknown part {part_id}",
                **context))
    for part_id, count in sorted(placements.items()):
        if count > 1 and model.has_part(part_id):
            issues.append(ValidationIssue(
                IDENTITY, f"Part {part_id} is placed in {count} slots", part_id=part_id))
    for part in model.parts():
        if part.part_id not in placements:
            issues.append(ValidationIssue(
                IDENTITY, f"Part {part.part_id} is registered but not placed in any slot",
                part_id=part.part_id))

    # (d) paths
    parts = [part for part, _ in placed_parts]
    if plan is not None:
        for part, context in placed_parts:
            if part.part_id not in plan:
                issues.append(ValidationIssue(
                    UNRESOLVED, f"Part '{part.name}' has no resolved sample path", **context))
    elif resolver is not None:
        issues.extend(ValidationIssue.from_error(e) for e in resolver.collisions(parts))
    else:
        for part, context in placed_parts:
            issues.append(ValidationIssue(
                UNRESOLVED, f"Part '{part.name}' has no resolved sample path", **context))

    if model.is_empty:
        issues.append(ValidationIssue(EMPTY, "No key has any sample; nothing to export"))

    is_valid = len(issues) == 0
    if is_valid:
        logger.debug(f"Mapping valid: {len(parts)} parts", component="VALID")
    else:
        logger.warning(f"Mapping has {len(issues)} issue(s)", component="VALID",
                       details=issues[0].message)

    if strict and not is_valid:
        raise ExportValidationError(issues)

    return is_valid, issues
