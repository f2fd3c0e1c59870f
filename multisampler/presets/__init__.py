"""
Presets module - resolve, validate, encode and decode Sampler presets.
"""

from .adv_schema import (
    InstrumentSettings,
    validate_settings,
)

from .path_resolver import (
    PathPlan,
    PathResolver,
    ResolvedSample,
)

from .validator import (
    ValidationIssue,
    validate_mapping,
)

from .adv_encoder import (
    encode_document,
    encode_preset,
)

from .adv_decoder import (
    DecodedPreset,
    decode_document,
)

from .preset_manager import (
    ExportResult,
    PresetError,
    PresetManager,
)

__all__ = [
    "InstrumentSettings",
    "validate_settings",
    "PathPlan",
    "PathResolver",
    "ResolvedSample",
    "ValidationIssue",
    "validate_mapping",
    "encode_document",
    "encode_preset",
    "DecodedPreset",
    "decode_document",
    "ExportResult",
    "PresetError",
    "PresetManager",
]
