"""
Mapping errors.

Every failure the core can report is a MappingError subclass carrying a
stable `code` plus whatever key/layer/part context identifies the culprit.
None of them are fatal; callers catch, surface the message, and carry on.
"""

from typing import List, Optional


class MappingError(Exception):
    """Base class for mapping, resolution, encoding and decoding failures."""

    code = "MappingError"

    def __init__(self, message: str, key_id: Optional[int] = None,
                 layer_id: Optional[int] = None, part_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.key_id = key_id
        self.layer_id = layer_id
        self.part_id = part_id


class InvalidKeyError(MappingError):
    """MIDI key outside 0-127."""
    code = "InvalidKey"


class UnsupportedFormatError(MappingError):
    """File reference is not a recognised audio container."""
    code = "UnsupportedFormat"


class DuplicateSampleNameError(MappingError):
    """Two different source files would land on the same Samples/Imported name."""
    code = "DuplicateSampleName"


class EmptyMappingError(MappingError):
    """No key has any sample; nothing to export."""
    code = "EmptyMapping"


class UnresolvedPathError(MappingError):
    """A part reached the encoder without a resolved relative path."""
    code = "UnresolvedPath"


class MalformedDocumentError(MappingError):
    """Preset document is unparsable or structurally invalid."""
    code = "MalformedDocument"


class OutOfRangeValueError(MappingError):
    """Key, velocity or segment value outside its bounds or misordered."""
    code = "OutOfRangeValue"


class IdentityCollisionError(MappingError):
    """Two parts (or two slots) claim the same identity."""
    code = "IdentityCollision"


class ExportValidationError(MappingError):
    """Raised by strict validation; carries every issue found."""
    code = "ExportValidation"

    def __init__(self, issues: List):
        self.issues = list(issues)
        summary = "; ".join(issue.message for issue in self.issues)
        super().__init__(f"Mapping failed validation: {summary}")
