"""
Preset manager - export/load of sampler presets.

Export is all-or-nothing: the model is snapshotted, validated, resolved and
encoded in memory, and only then written to disk atomically. On any
failure nothing is written.
"""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from multisampler.config import PRESET_EXTENSION
from multisampler.model.mapping import MappingModel
from multisampler.utils.app_paths import get_preset_dir
from multisampler.utils.logger import logger
from .adv_decoder import DecodedPreset, decode_document
from .adv_encoder import encode_preset
from .adv_schema import InstrumentSettings, validate_settings
from .path_resolver import PathPlan, PathResolver
from .preset_utils import sanitize_filename
from .validator import validate_mapping


class PresetError(Exception):
    """Raised when preset file operations fail."""
    pass


@dataclass
class ExportResult:
    """What an export wrote, and what the caller still has to copy."""
    preset_path: Path
    plan: PathPlan
    copy_plan: List[Tuple[str, str]] = field(default_factory=list)


class PresetManager:
    """
    Manages preset export/load operations.

    Usage:
        manager = PresetManager()
        result = manager.export(model, "/home/me/Presets/Drums.adv")
        for source, destination in result.copy_plan:
            ...  # copy each sample next to the preset

        decoded = manager.load(result.preset_path)
        decoded.model.mapped_keys()
    """

    def __init__(self, presets_dir: Optional[Path] = None):
        self.presets_dir = Path(presets_dir) if presets_dir else get_preset_dir()
        self.presets_dir.mkdir(parents=True, exist_ok=True)

    def write_preset_file(self, dest_path: Path, data: bytes, *, allow_overwrite: bool = True) -> None:
        """
        Write encoded preset bytes atomically.

        1. Write temp file in dirname(dest_path)
        2. Commit using os.replace(temp, dest_path)

        Raises:
            PresetError: If write fails or file exists when allow_overwrite=False
        """
        dest_path = Path(dest_path)

        if not allow_overwrite and dest_path.exists():
            raise PresetError(f"File already exists: {dest_path}")

        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                suffix='.tmp',
                prefix='.preset_',
                dir=dest_path.parent
            )
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(data)
                os.replace(temp_path, dest_path)
            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise
        except OSError as e:
            raise PresetError(f"Failed to write preset: {e}")

    def export(self, model: MappingModel, dest_path, settings: Optional[InstrumentSettings] = None,
               allow_overwrite: bool = True) -> ExportResult:
        """
        Validate, resolve, encode and write a preset.

        Args:
            model: Mapping to export (snapshotted first, never modified)
            dest_path: Preset file path; '.adv' is appended when missing
            settings: Device settings (defaults when None)
            allow_overwrite: If False, fail when dest_path exists

        Returns:
            ExportResult with the written path and the sample copy plan

        Raises:
            ExportValidationError: the mapping has blocking issues
            PresetError: bad settings or the file could not be written
        """
        dest_path = Path(dest_path)
        if dest_path.suffix.lower() != PRESET_EXTENSION:
            dest_path = dest_path.with_name(dest_path.name + PRESET_EXTENSION)

        if not allow_overwrite and dest_path.exists():
            raise PresetError(f"File already exists: {dest_path}")

        settings = settings or InstrumentSettings(name=dest_path.stem)
        is_valid, errors = validate_settings(settings)
        if not is_valid:
            raise PresetError(f"Invalid settings: {'; '.join(errors)}")

        snapshot = model.snapshot()
        resolver = PathResolver(dest_path)
        validate_mapping(snapshot, resolver=resolver, strict=True)
        plan = resolver.resolve_all(snapshot.parts())
        data = encode_preset(snapshot, plan, settings)

        self.write_preset_file(dest_path, data, allow_overwrite=allow_overwrite)
        logger.info(f"Preset written: {dest_path.name}", component="PRESET",
                    details=f"{len(plan)} parts, {len(plan.copy_plan())} files")
        return ExportResult(preset_path=dest_path, plan=plan, copy_plan=plan.copy_plan())

    def save(self, model: MappingModel, name: str, settings: Optional[InstrumentSettings] = None,
             overwrite: bool = False) -> ExportResult:
        """
        Export into the presets directory under a sanitised name.

        If overwrite is False an existing name gets a numeric suffix.
        """
        base = self._sanitize_filename(name) or "Multisample"
        filepath = self.presets_dir / f"{base}{PRESET_EXTENSION}"

        if filepath.exists() and not overwrite:
            counter = 1
            while filepath.exists():
                filepath = self.presets_dir / f"{base}_{counter}{PRESET_EXTENSION}"
                counter += 1

        settings = settings or InstrumentSettings(name=name)
        return self.export(model, filepath, settings, allow_overwrite=True)

    def load(self, filepath: Path) -> DecodedPreset:
        """
        Load a preset file.

        Raises:
            PresetError: If the file doesn't exist or can't be read
            MalformedDocumentError: If the contents are not a valid preset
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise PresetError(f"Preset file not found: {filepath}")

        try:
            data = filepath.read_bytes()
        except OSError as e:
            raise PresetError(f"Failed to read preset file: {e}")

        decoded = decode_document(data, preset_path=filepath)
        logger.info(f"Preset loaded: {filepath.name}", component="PRESET",
                    details=f"{decoded.model.sample_count} parts")
        return decoded

    def list_presets(self) -> list:
        """Preset files in the presets directory, newest first."""
        presets = list(self.presets_dir.glob(f"*{PRESET_EXTENSION}"))
        presets.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        return presets

    def delete(self, filepath: Path) -> bool:
        """
        Delete a preset file.

        Returns:
            True if deleted, False if file didn't exist
        """
        filepath = Path(filepath)
        if filepath.exists():
            filepath.unlink()
            logger.info(f"Preset deleted: {filepath.name}", component="PRESET")
            return True
        return False

    def _sanitize_filename(self, name: str) -> str:
        return sanitize_filename(name)
