"""
Mapping model for a key / velocity / round-robin multisample instrument.

Ownership:
    MappingModel
      └── PianoKey × 128
            └── VelocityLayer (stored in descending velocity order)
                  └── slots: [part_id | None, ...]   (None = hole)

Parts live in a single arena keyed by part_id. Layers only hold ids, so a
part has exactly one copy and bulk edits (pitch settings, segments) replace
it in one place. Parts are frozen; every edit goes through the model.
"""

import copy
from dataclasses import dataclass, field, replace
from pathlib import PurePath
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from multisampler.audio.formats import is_supported_audio
from multisampler.config import (
    DEFAULT_MAPPING_VELOCITY,
    DEFAULT_PART_VOLUME,
    DEFAULT_TUNE_SCALE,
    MIDI_MAX,
    MIDI_MIN,
    NUM_KEYS,
    RELEASE_LOOP_DEFAULT_MODE,
    SUSTAIN_LOOP_DEFAULT_MODE,
    VELOCITY_MAX,
    VELOCITY_MIN,
    is_white_key,
    note_name,
)
from multisampler.utils.logger import logger
from .errors import (
    IdentityCollisionError,
    InvalidKeyError,
    OutOfRangeValueError,
    UnsupportedFormatError,
)

PITCHED_DEFAULT_SPAN = 12  # Semitones either side of the key when no range is given


@dataclass(frozen=True)
class VelocityRange:
    """Velocity bucket with host crossfade bounds (all 0-127)."""
    min: int = VELOCITY_MIN
    max: int = VELOCITY_MAX
    crossfade_min: int = VELOCITY_MIN
    crossfade_max: int = VELOCITY_MAX

    @classmethod
    def full(cls) -> "VelocityRange":
        return cls(VELOCITY_MIN, VELOCITY_MAX, VELOCITY_MIN, VELOCITY_MAX)

    @classmethod
    def span(cls, low: int, high: int) -> "VelocityRange":
        """Range without crossfade (crossfade bounds equal the range)."""
        return cls(low, high, low, high)

    def covers(self, velocity: int) -> bool:
        return self.min <= velocity <= self.max

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.min, self.max, self.crossfade_min, self.crossfade_max)


@dataclass(frozen=True)
class SampleFileRef:
    """
    Externally resolved facts about a source audio file.

    The model trusts these values and never opens the file.
    """
    path: str
    sample_rate: float
    frame_count: int
    file_size: int = 0
    last_modified: int = 0          # POSIX seconds
    original_path: Optional[str] = None

    @property
    def filename(self) -> str:
        return PurePath(self.path).name

    @property
    def stem(self) -> str:
        return PurePath(self.path).stem


@dataclass(frozen=True)
class SampleSlice:
    """A sub-region of a source file; end=None means end of file."""
    file_ref: SampleFileRef
    start: int = 0
    end: Optional[int] = None


@dataclass(frozen=True)
class LoopSettings:
    start: int = 0
    end: int = 0
    mode: int = SUSTAIN_LOOP_DEFAULT_MODE
    crossfade: float = 0.0
    detune: float = 0.0


def _default_release_loop() -> LoopSettings:
    return LoopSettings(mode=RELEASE_LOOP_DEFAULT_MODE)


@dataclass(frozen=True)
class MultiSamplePart:
    """One serialized sample reference."""
    part_id: int
    name: str
    key_range_min: int
    key_range_max: int
    velocity_range: VelocityRange
    source_path: str
    original_path: str
    sample_rate: float
    frame_count: int
    file_size: int = 0
    last_modified: int = 0
    segment_start: int = 0
    segment_end: int = 0
    is_pitched: bool = False
    original_root_key: Optional[int] = None  # Only set when pitched
    detune: int = 0                          # Cents
    tune_scale: int = DEFAULT_TUNE_SCALE
    panorama: float = 0.0                    # -1 .. 1
    volume: float = DEFAULT_PART_VOLUME      # Linear gain
    sustain_loop: LoopSettings = field(default_factory=LoopSettings)
    release_loop: LoopSettings = field(default_factory=_default_release_loop)

    @property
    def root_key(self) -> int:
        """Effective playback root: the original root when pitched, else key_range_min."""
        if self.is_pitched and self.original_root_key is not None:
            return self.original_root_key
        return self.key_range_min

    @property
    def segment_frame_count(self) -> int:
        return max(0, self.segment_end - self.segment_start)

    @property
    def source_filename(self) -> str:
        return PurePath(self.source_path).name


@dataclass
class VelocityLayer:
    """Round-robin slots for one velocity bucket on one key."""
    layer_id: int
    key_id: int
    velocity_range: VelocityRange
    slots: List[Optional[int]] = field(default_factory=list)

    @property
    def active_sample_count(self) -> int:
        return sum(1 for part_id in self.slots if part_id is not None)

    @property
    def round_robin_count(self) -> int:
        return len(self.slots)

    @property
    def is_empty(self) -> bool:
        return self.active_sample_count == 0

    def occupied(self) -> List[Tuple[int, int]]:
        """(round-robin index, part_id) for every non-hole slot, in index order."""
        return [(i, part_id) for i, part_id in enumerate(self.slots) if part_id is not None]


@dataclass
class PianoKey:
    midi_note: int
    name: str
    is_white: bool
    layers: List[VelocityLayer] = field(default_factory=list)

    @property
    def has_sample(self) -> bool:
        return any(not layer.is_empty for layer in self.layers)


def _layer_sort_key(layer: VelocityLayer) -> Tuple[int, int]:
    # Descending velocity; list.sort is stable so equal ranges keep insertion order
    return (-layer.velocity_range.max, -layer.velocity_range.min)


Listener = Callable[[str, int], None]
SliceLike = Union[SampleFileRef, SampleSlice]


class MappingModel:
    """
    Authoritative in-memory mapping.

    Not safe for concurrent writers. Export code works on snapshot().

    Usage:
        model = MappingModel()
        part = model.add_sample(60, SampleFileRef("/tmp/kick.wav", 44100.0, 4410))
        layer = model.add_velocity_layer(60, VelocityRange.span(0, 63))
        model.assign_round_robin_slot(layer.layer_id, 3, ref)
        model.apply_pitch_settings(layer.layer_id, True, root_key=60,
                                   key_range_min=48, key_range_max=72)
    """

    def __init__(self):
        self._keys: List[PianoKey] = [
            PianoKey(midi_note=n, name=note_name(n), is_white=is_white_key(n))
            for n in range(NUM_KEYS)
        ]
        self._layers: Dict[int, VelocityLayer] = {}
        self._parts: Dict[int, MultiSamplePart] = {}
        self._next_layer_id = 1
        self._next_part_id = 1
        self._listeners: List[Listener] = []

    # -- Listeners -----------------------------------------------------------

    def add_listener(self, callback: Listener):
        """callback(event, key_id) runs after every mutation."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Listener):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, event: str, key_id: int):
        for callback in list(self._listeners):
            callback(event, key_id)

    def snapshot(self) -> "MappingModel":
        """Deep copy without listeners, for validate + encode."""
        listeners, self._listeners = self._listeners, []
        try:
            return copy.deepcopy(self)
        finally:
            self._listeners = listeners

    # -- Lookup --------------------------------------------------------------

    @property
    def keys(self) -> List[PianoKey]:
        return list(self._keys)

    def key(self, key_id: int) -> PianoKey:
        self._check_key(key_id)
        return self._keys[key_id]

    def layer(self, layer_id: int) -> VelocityLayer:
        try:
            return self._layers[layer_id]
        except KeyError:
            raise KeyError(f"Unknown velocity layer: {layer_id}") from None

    def part(self, part_id: int) -> MultiSamplePart:
        try:
            return self._parts[part_id]
        except KeyError:
            raise KeyError(f"Unknown sample part: {part_id}") from None

    def has_part(self, part_id: int) -> bool:
        return part_id in self._parts

    def layers_for_key(self, key_id: int) -> List[VelocityLayer]:
        return list(self.key(key_id).layers)

    def parts(self) -> List[MultiSamplePart]:
        """Every registered part, ordered by identity."""
        return [self._parts[part_id] for part_id in sorted(self._parts)]

    def parts_for_layer(self, layer_id: int) -> List[Tuple[int, MultiSamplePart]]:
        layer = self.layer(layer_id)
        return [(i, self._parts[part_id]) for i, part_id in layer.occupied()]

    def has_sample(self, key_id: int) -> bool:
        return self.key(key_id).has_sample

    def mapped_keys(self) -> List[int]:
        return [k.midi_note for k in self._keys if k.has_sample]

    @property
    def sample_count(self) -> int:
        return len(self._parts)

    @property
    def is_empty(self) -> bool:
        return not any(k.has_sample for k in self._keys)

    def walk(self) -> Iterator[Tuple[PianoKey, VelocityLayer, int, int]]:
        """
        Yield (key, layer, round-robin index, part_id) in export order:
        keys ascending, layers in stored order, occupied slots by index.
        Dangling ids are yielded too so the validator can report them.
        """
        for key in self._keys:
            for layer in key.layers:
                for index, part_id in layer.occupied():
                    yield key, layer, index, part_id

    def owner_of(self, part_id: int) -> Tuple[VelocityLayer, int]:
        """(layer, slot index) holding part_id."""
        for layer in self._layers.values():
            for index, slot in enumerate(layer.slots):
                if slot == part_id:
                    return layer, index
        raise KeyError(f"Sample part {part_id} is not placed in any slot")

    # -- Checks --------------------------------------------------------------

    @staticmethod
    def _check_key(key_id):
        if isinstance(key_id, bool) or not isinstance(key_id, int):
            raise InvalidKeyError(f"MIDI key must be an integer, got {key_id!r}")
        if not (MIDI_MIN <= key_id <= MIDI_MAX):
            raise InvalidKeyError(f"MIDI key must be {MIDI_MIN}-{MIDI_MAX}, got {key_id}", key_id=key_id)

    @staticmethod
    def _check_range(label: str, low: int, high: int, lo_bound: int, hi_bound: int, **context):
        if not (lo_bound <= low <= hi_bound) or not (lo_bound <= high <= hi_bound):
            raise OutOfRangeValueError(
                f"{label} must lie within {lo_bound}-{hi_bound}, got {low}-{high}", **context)
        if low > high:
            raise OutOfRangeValueError(f"{label} min {low} exceeds max {high}", **context)

    def _check_velocity_range(self, velocity_range: VelocityRange, **context):
        self._check_range("Velocity range", velocity_range.min, velocity_range.max,
                          VELOCITY_MIN, VELOCITY_MAX, **context)
        for label, value in (("crossfade_min", velocity_range.crossfade_min),
                             ("crossfade_max", velocity_range.crossfade_max)):
            if not (VELOCITY_MIN <= value <= VELOCITY_MAX):
                raise OutOfRangeValueError(
                    f"Velocity {label} must be {VELOCITY_MIN}-{VELOCITY_MAX}, got {value}", **context)

    @staticmethod
    def _check_format(file_ref: SampleFileRef, **context):
        if not is_supported_audio(file_ref.path):
            raise UnsupportedFormatError(f"Not a supported audio file: {file_ref.path}", **context)

    @staticmethod
    def _check_segment(start: int, end: int, frame_count: int, **context):
        if start < 0 or end < start or end > frame_count:
            raise OutOfRangeValueError(
                f"Segment {start}-{end} must satisfy 0 <= start <= end <= {frame_count}", **context)

    def _pitch_values(self, key_id: int, is_pitched: bool, root_key: Optional[int],
                      key_range_min: Optional[int], key_range_max: Optional[int],
                      **context) -> Tuple[int, int, Optional[int]]:
        """(key_range_min, key_range_max, root) a layer on key_id would get."""
        if not is_pitched:
            return key_id, key_id, None
        low = max(MIDI_MIN, key_id - PITCHED_DEFAULT_SPAN) if key_range_min is None else key_range_min
        high = min(MIDI_MAX, key_id + PITCHED_DEFAULT_SPAN) if key_range_max is None else key_range_max
        root = key_id if root_key is None else root_key
        self._check_range("Key range", low, high, MIDI_MIN, MIDI_MAX, key_id=key_id, **context)
        if not (MIDI_MIN <= root <= MIDI_MAX):
            raise OutOfRangeValueError(f"Root key must be {MIDI_MIN}-{MIDI_MAX}, got {root}",
                                       key_id=key_id, **context)
        return low, high, root

    @staticmethod
    def _as_slice(item: SliceLike) -> SampleSlice:
        return item if isinstance(item, SampleSlice) else SampleSlice(item)

    # -- Part creation -------------------------------------------------------

    def _allocate_part_id(self) -> int:
        part_id = self._next_part_id
        self._next_part_id += 1
        return part_id

    def _build_part(self, layer: VelocityLayer, sample: SampleSlice) -> MultiSamplePart:
        """Unpitched part for the layer's key; segment checked, id not yet allocated."""
        ref = sample.file_ref
        end = ref.frame_count if sample.end is None else sample.end
        self._check_segment(sample.start, end, ref.frame_count,
                            key_id=layer.key_id, layer_id=layer.layer_id)
        return MultiSamplePart(
            part_id=0,
            name=ref.stem,
            key_range_min=layer.key_id,
            key_range_max=layer.key_id,
            velocity_range=layer.velocity_range,
            source_path=ref.path,
            original_path=ref.original_path or ref.path,
            sample_rate=float(ref.sample_rate),
            frame_count=ref.frame_count,
            file_size=ref.file_size,
            last_modified=ref.last_modified,
            segment_start=sample.start,
            segment_end=end,
        )

    def _place(self, layer: VelocityLayer, index: int, part: MultiSamplePart) -> MultiSamplePart:
        part = replace(part, part_id=self._allocate_part_id())
        if index >= len(layer.slots):
            layer.slots.extend([None] * (index + 1 - len(layer.slots)))
        previous = layer.slots[index]
        if previous is not None:
            del self._parts[previous]
        layer.slots[index] = part.part_id
        self._parts[part.part_id] = part
        return part

    # -- Core operations -----------------------------------------------------

    def add_sample(self, key_id: int, file_ref: SampleFileRef) -> MultiSamplePart:
        """
        Map a file to a key as a new round-robin slot.

        Goes into the first stored layer covering DEFAULT_MAPPING_VELOCITY;
        a full-range layer is created when none does.

        Raises:
            InvalidKeyError: key_id outside 0-127
            UnsupportedFormatError: file is not a recognised audio container
        """
        key = self.key(key_id)
        self._check_format(file_ref, key_id=key_id)

        layer = next((l for l in key.layers if l.velocity_range.covers(DEFAULT_MAPPING_VELOCITY)), None)
        if layer is None:
            layer = self._create_layer(key, VelocityRange.full())

        part = self._place(layer, len(layer.slots), self._build_part(layer, SampleSlice(file_ref)))
        logger.mapping(f"Key {key_id}: added '{part.name}' as part {part.part_id}",
                       details=f"layer {layer.layer_id} rr {len(layer.slots) - 1}")
        self._notify("sample_added", key_id)
        return part

    def _create_layer(self, key: PianoKey, velocity_range: VelocityRange) -> VelocityLayer:
        layer = VelocityLayer(layer_id=self._next_layer_id, key_id=key.midi_note,
                              velocity_range=velocity_range)
        self._next_layer_id += 1
        self._layers[layer.layer_id] = layer
        key.layers.append(layer)
        key.layers.sort(key=_layer_sort_key)
        return layer

    def add_velocity_layer(self, key_id: int,
                           velocity_range: Optional[VelocityRange] = None) -> VelocityLayer:
        """Add a layer to a key. Overlapping ranges are allowed."""
        key = self.key(key_id)
        velocity_range = velocity_range or VelocityRange.full()
        self._check_velocity_range(velocity_range, key_id=key_id)
        layer = self._create_layer(key, velocity_range)
        logger.mapping(f"Key {key_id}: added layer {layer.layer_id}",
                       details=f"velocity {velocity_range.min}-{velocity_range.max}")
        self._notify("layer_added", key_id)
        return layer

    def assign_round_robin_slot(self, layer_id: int, index: int, file_ref: SampleFileRef,
                                segment: Optional[Tuple[int, int]] = None) -> MultiSamplePart:
        """
        Put a file into round-robin slot `index`, padding with holes as needed.
        Any part already in that slot is released.
        """
        layer = self.layer(layer_id)
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise OutOfRangeValueError(f"Round-robin index must be >= 0, got {index!r}",
                                       key_id=layer.key_id, layer_id=layer_id)
        self._check_format(file_ref, key_id=layer.key_id, layer_id=layer_id)
        sample = SampleSlice(file_ref, *segment) if segment else SampleSlice(file_ref)
        part = self._place(layer, index, self._build_part(layer, sample))
        logger.mapping(f"Layer {layer_id}: slot {index} <- '{part.name}'",
                       details=f"part {part.part_id}")
        self._notify("sample_added", layer.key_id)
        return part

    def apply_pitch_settings(self, layer_id: int, is_pitched: bool,
                             root_key: Optional[int] = None,
                             key_range_min: Optional[int] = None,
                             key_range_max: Optional[int] = None):
        """
        Set pitch mode on every occupied slot of a layer as one transaction.

        Pitched: key range defaults to the layer's key +/- 12, root key to the
        layer's key. Fixed: key range collapses to the layer's key and the
        root key is cleared. Arguments are checked before any part changes.
        """
        layer = self.layer(layer_id)
        key_id = layer.key_id
        low, high, root = self._pitch_values(key_id, is_pitched, root_key, key_range_min, key_range_max,
                                             layer_id=layer_id)

        updated = {
            part_id: replace(self._parts[part_id], is_pitched=bool(is_pitched),
                             original_root_key=root, key_range_min=low, key_range_max=high)
            for _, part_id in layer.occupied()
        }
        self._parts.update(updated)

        mode = f"pitched {low}-{high} root {root}" if is_pitched else "fixed"
        logger.mapping(f"Layer {layer_id}: {mode}", details=f"{len(updated)} parts")
        self._notify("pitch_changed", key_id)

    def remove_sample(self, part_id: int):
        """Clear the part's slot (slot count unchanged) and drop it from the arena."""
        self.part(part_id)
        layer, index = self.owner_of(part_id)
        layer.slots[index] = None
        del self._parts[part_id]
        logger.mapping(f"Removed part {part_id}", details=f"layer {layer.layer_id} rr {index}")
        self._notify("sample_removed", layer.key_id)

    # -- Layer edits ---------------------------------------------------------

    def remove_velocity_layer(self, layer_id: int):
        layer = self.layer(layer_id)
        for _, part_id in layer.occupied():
            self._parts.pop(part_id, None)
        self._keys[layer.key_id].layers.remove(layer)
        del self._layers[layer_id]
        logger.mapping(f"Key {layer.key_id}: removed layer {layer_id}")
        self._notify("layer_removed", layer.key_id)

    def clear_key(self, key_id: int):
        key = self.key(key_id)
        for layer in list(key.layers):
            for _, part_id in layer.occupied():
                self._parts.pop(part_id, None)
            del self._layers[layer.layer_id]
        key.layers.clear()
        self._notify("key_cleared", key_id)

    def set_layer_velocity_range(self, layer_id: int, velocity_range: VelocityRange):
        """Change a layer's range. Parts already in the layer keep their own copy."""
        layer = self.layer(layer_id)
        self._check_velocity_range(velocity_range, key_id=layer.key_id, layer_id=layer_id)
        layer.velocity_range = velocity_range
        self._keys[layer.key_id].layers.sort(key=_layer_sort_key)
        self._notify("layer_changed", layer.key_id)

    # -- Part edits ----------------------------------------------------------

    def _replace_part(self, part_id: int, **changes) -> MultiSamplePart:
        part = replace(self.part(part_id), **changes)
        self._parts[part_id] = part
        layer, _ = self.owner_of(part_id)
        self._notify("part_changed", layer.key_id)
        return part

    def update_segment(self, part_id: int, start: int, end: int) -> MultiSamplePart:
        part = self.part(part_id)
        self._check_segment(start, end, part.frame_count, part_id=part_id)
        return self._replace_part(part_id, segment_start=start, segment_end=end)

    def rename_part(self, part_id: int, name: str) -> MultiSamplePart:
        name = name.strip()
        if not name:
            raise ValueError("Part name cannot be empty")
        return self._replace_part(part_id, name=name)

    def set_loop(self, part_id: int, sustain: Optional[LoopSettings] = None,
                 release: Optional[LoopSettings] = None) -> MultiSamplePart:
        part = self.part(part_id)
        changes = {}
        for attr, loop in (("sustain_loop", sustain), ("release_loop", release)):
            if loop is None:
                continue
            if not (0 <= loop.start <= loop.end <= part.frame_count):
                raise OutOfRangeValueError(
                    f"Loop {loop.start}-{loop.end} outside 0-{part.frame_count}", part_id=part_id)
            changes[attr] = loop
        return self._replace_part(part_id, **changes)

    def set_part_playback(self, part_id: int, detune: Optional[int] = None,
                          tune_scale: Optional[int] = None, panorama: Optional[float] = None,
                          volume: Optional[float] = None) -> MultiSamplePart:
        if panorama is not None and not (-1.0 <= panorama <= 1.0):
            raise OutOfRangeValueError(f"Panorama must be -1..1, got {panorama}", part_id=part_id)
        if volume is not None and volume < 0:
            raise OutOfRangeValueError(f"Volume must be >= 0, got {volume}", part_id=part_id)
        changes = {name: value for name, value in (
            ("detune", detune), ("tune_scale", tune_scale),
            ("panorama", panorama), ("volume", volume)) if value is not None}
        return self._replace_part(part_id, **changes)

    # -- Bulk mapping --------------------------------------------------------

    def map_groups_to_velocity_layers(self, key_id: int, groups: Sequence[Sequence[SliceLike]],
                                      split_mode=None, is_pitched: bool = False,
                                      root_key: Optional[int] = None,
                                      key_range_min: Optional[int] = None,
                                      key_range_max: Optional[int] = None) -> List[VelocityLayer]:
        """
        Replace a key's mapping: one velocity layer per group (lowest group =
        softest layer), each slice of a group in its own round-robin slot.

        With is_pitched the new layers play across a key range, as with
        apply_pitch_settings (same defaults). Everything, pitch arguments
        included, is checked before the key is cleared.
        """
        from .velocity_split import VelocitySplitMode, split_velocity_ranges

        key = self.key(key_id)
        slices = [[self._as_slice(item) for item in group] for group in groups]
        for group in slices:
            for sample in group:
                self._check_format(sample.file_ref, key_id=key_id)
                end = sample.file_ref.frame_count if sample.end is None else sample.end
                self._check_segment(sample.start, end, sample.file_ref.frame_count, key_id=key_id)
        low, high, root = self._pitch_values(key_id, is_pitched, root_key, key_range_min, key_range_max)

        ranges = split_velocity_ranges(len(slices), split_mode or VelocitySplitMode.SEPARATE)

        for layer in list(key.layers):
            for _, part_id in layer.occupied():
                self._parts.pop(part_id, None)
            del self._layers[layer.layer_id]
        key.layers.clear()

        layers = []
        for velocity_range, group in zip(ranges, slices):
            layer = self._create_layer(key, velocity_range)
            for index, sample in enumerate(group):
                part = replace(self._build_part(layer, sample), is_pitched=bool(is_pitched),
                               original_root_key=root, key_range_min=low, key_range_max=high)
                self._place(layer, index, part)
            layers.append(layer)

        mode = f"pitched {low}-{high} root {root}" if is_pitched else "fixed"
        logger.mapping(f"Key {key_id}: mapped {len(slices)} groups ({mode})",
                       details=f"{sum(len(g) for g in slices)} slices")
        self._notify("key_cleared", key_id)
        self._notify("layer_added", key_id)
        return layers

    def import_batch(self, file_refs: Sequence[SampleFileRef]) -> List[SampleFileRef]:
        """
        Route files by their names (see filename_parser).

        Files land on the parsed note, in a layer with exactly the parsed
        velocity range (created if missing, full range by default), at the
        parsed round-robin number (1-based) or the next free slot. A file
        whose round-robin slot is already taken is skipped; the earlier
        sample stays.

        Returns:
            File refs that could not be placed
        """
        from .filename_parser import parse_filename

        skipped = []
        for ref in file_refs:
            info = parse_filename(ref.path)
            if info.midi_note is None or not is_supported_audio(ref.path):
                skipped.append(ref)
                continue

            low, high = info.velocity_range or (VELOCITY_MIN, VELOCITY_MAX)
            if not (VELOCITY_MIN <= low <= high <= VELOCITY_MAX):
                skipped.append(ref)
                continue

            key = self._keys[info.midi_note]
            layer = next((l for l in key.layers
                          if (l.velocity_range.min, l.velocity_range.max) == (low, high)), None)
            if layer is None:
                layer = self._create_layer(key, VelocityRange.span(low, high))

            if info.round_robin_index is None:
                index = len(layer.slots)
            else:
                index = max(0, info.round_robin_index - 1)
                if index < len(layer.slots) and layer.slots[index] is not None:
                    logger.warning(f"Batch import: slot rr{info.round_robin_index} on key "
                                   f"{key.midi_note} already taken, skipping",
                                   component="MAP", details=ref.path)
                    skipped.append(ref)
                    continue
            self._place(layer, index, self._build_part(layer, SampleSlice(ref)))
            self._notify("sample_added", key.midi_note)

        logger.info(f"Batch import: {len(file_refs) - len(skipped)} placed, {len(skipped)} skipped",
                    component="MAP")
        return skipped

    # -- Restore (decoder) ---------------------------------------------------

    def restore_part(self, layer_id: int, part: MultiSamplePart) -> MultiSamplePart:
        """
        Append an existing part (with its own identity) to a layer's slots.

        Raises:
            IdentityCollisionError: part_id already registered
        """
        layer = self.layer(layer_id)
        if part.part_id in self._parts:
            raise IdentityCollisionError(f"Sample part id {part.part_id} already exists",
                                         key_id=layer.key_id, layer_id=layer_id, part_id=part.part_id)
        layer.slots.append(part.part_id)
        self._parts[part.part_id] = part
        self._next_part_id = max(self._next_part_id, part.part_id + 1)
        self._notify("sample_added", layer.key_id)
        return part
