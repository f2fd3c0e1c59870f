"""
Sample path resolution for exported presets.

Every sample is recorded relative to the preset file's directory
(RelativePathType 3) and expected at a fixed place beneath it:

    <dir>/<name>.adv
    <dir>/Samples/Imported/<source filename>

Resolution is pure: it depends only on the preset location and the source
filename, and never touches the filesystem. Copying files to their
destinations is the caller's job (see PathPlan.copy_plan).
"""

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, Iterable, List, Optional, Tuple

from multisampler.config import SAMPLES_RELATIVE_PREFIX, SAMPLES_SUBDIR
from multisampler.model.errors import DuplicateSampleNameError
from multisampler.model.mapping import MultiSamplePart
from multisampler.utils.logger import logger
from .preset_utils import normalized_source_path, sample_name_key


@dataclass(frozen=True)
class ResolvedSample:
    """Where one part's audio is recorded and where it must be placed."""
    relative_path: str   # Written into the document, always forward slashes
    destination: str     # Absolute target path under the preset directory
    source: str          # Where the audio currently lives


@dataclass
class PathPlan:
    """Resolved paths for a set of parts, keyed by part_id."""
    preset_path: str
    entries: Dict[int, ResolvedSample] = field(default_factory=dict)

    def __contains__(self, part_id: int) -> bool:
        return part_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, part_id: int) -> Optional[ResolvedSample]:
        return self.entries.get(part_id)

    def relative_path(self, part_id: int) -> Optional[str]:
        entry = self.entries.get(part_id)
        return entry.relative_path if entry else None

    def copy_plan(self) -> List[Tuple[str, str]]:
        """Unique (source, destination) pairs the caller must copy, sorted."""
        return sorted({(e.source, e.destination) for e in self.entries.values()})


class PathResolver:
    """
    Computes document paths for sample parts.

    Usage:
        resolver = PathResolver("/home/me/Presets/Drums.adv")
        plan = resolver.resolve_all(model.parts())
        plan.relative_path(part.part_id)   # 'Samples/Imported/kick.wav'
    """

    def __init__(self, preset_path):
        self.preset_path = PurePath(str(preset_path))
        self.preset_dir = self.preset_path.parent

    def relative_path_for(self, source_path: str) -> str:
        return f"{SAMPLES_RELATIVE_PREFIX}/{PurePath(source_path).name}"

    def destination_for(self, source_path: str) -> str:
        return str(self.preset_dir.joinpath(*SAMPLES_SUBDIR, PurePath(source_path).name))

    def resolve(self, part: MultiSamplePart) -> ResolvedSample:
        return ResolvedSample(
            relative_path=self.relative_path_for(part.source_path),
            destination=self.destination_for(part.source_path),
            source=part.source_path,
        )

    def collisions(self, parts: Iterable[MultiSamplePart]) -> List[DuplicateSampleNameError]:
        """
        One error per Samples/Imported name claimed by more than one distinct
        source file. Parts slicing the same source share a name legitimately.
        """
        sources_by_name: Dict[str, Dict[str, List[MultiSamplePart]]] = {}
        for part in parts:
            name = sample_name_key(PurePath(part.source_path).name)
            source = normalized_source_path(part.source_path)
            sources_by_name.setdefault(name, {}).setdefault(source, []).append(part)

        errors = []
        for name in sorted(sources_by_name):
            sources = sources_by_name[name]
            if len(sources) < 2:
                continue
            first_parts = [group[0] for _, group in sorted(sources.items())]
            listing = ", ".join(sorted(sources))
            errors.append(DuplicateSampleNameError(
                f"'{PurePath(first_parts[0].source_path).name}' would be imported from "
                f"{len(sources)} different files: {listing}",
                key_id=first_parts[1].key_range_min,
                part_id=first_parts[1].part_id,
            ))
        return errors

    def resolve_all(self, parts: Iterable[MultiSamplePart]) -> PathPlan:
        """
        Resolve every part.

        Raises:
            DuplicateSampleNameError: two different sources share a filename
        """
        parts = list(parts)
        errors = self.collisions(parts)
        if errors:
            if len(errors) > 1:
                raise DuplicateSampleNameError(
                    "; ".join(e.message for e in errors),
                    key_id=errors[0].key_id, part_id=errors[0].part_id)
            raise errors[0]

        plan = PathPlan(preset_path=str(self.preset_path))
        for part in parts:
            plan.entries[part.part_id] = self.resolve(part)

        logger.debug(f"Resolved {len(plan)} parts to {len(plan.copy_plan())} files",
                     component="PATH", details=str(self.preset_dir))
        return plan
