"""
Mapping model - keys, velocity layers, round-robin slots and sample parts.
"""

from .errors import (
    MappingError,
    InvalidKeyError,
    UnsupportedFormatError,
    DuplicateSampleNameError,
    EmptyMappingError,
    UnresolvedPathError,
    MalformedDocumentError,
    OutOfRangeValueError,
    IdentityCollisionError,
    ExportValidationError,
)

from .mapping import (
    LoopSettings,
    MappingModel,
    MultiSamplePart,
    PianoKey,
    SampleFileRef,
    SampleSlice,
    VelocityLayer,
    VelocityRange,
)

from .velocity_split import VelocitySplitMode, split_velocity_ranges

__all__ = [
    "MappingModel",
    "PianoKey",
    "VelocityLayer",
    "VelocityRange",
    "MultiSamplePart",
    "SampleFileRef",
    "SampleSlice",
    "LoopSettings",
    "VelocitySplitMode",
    "split_velocity_ranges",
    "MappingError",
    "InvalidKeyError",
    "UnsupportedFormatError",
    "DuplicateSampleNameError",
    "EmptyMappingError",
    "UnresolvedPathError",
    "MalformedDocumentError",
    "OutOfRangeValueError",
    "IdentityCollisionError",
    "ExportValidationError",
]
