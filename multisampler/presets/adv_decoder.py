"""
Sampler preset (.adv) decoder.

Reads gzip-compressed or plain XML documents back into a MappingModel.

The format records no round-robin indices, so slots come back densely
packed in document order. Parts carrying a MappingLayer element (everything
this package writes) go to the key and layer recorded there. Other parts are
grouped as follows:

    owning key  = RootKey when pitched, else KeyRange/Min
    layer       = run of consecutive parts with the same owning key,
                  velocity range and pitch settings

Part identities come from the MultiSamplePart Id attribute.
"""

import gzip
import xml.etree.ElementTree as ET
import zlib
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, Optional, Tuple

from multisampler.config import (
    ADV_HEADER,
    DEFAULT_PART_VOLUME,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_TUNE_SCALE,
    DEVICE_DEFAULTS,
    MIDI_MAX,
    MIDI_MIN,
    RELEASE_LOOP_DEFAULT_MODE,
    SUSTAIN_LOOP_DEFAULT_MODE,
    VELOCITY_MAX,
    VELOCITY_MIN,
)
from multisampler.model.errors import IdentityCollisionError, MalformedDocumentError
from multisampler.model.mapping import (
    LoopSettings,
    MappingModel,
    MultiSamplePart,
    VelocityLayer,
    VelocityRange,
)
from multisampler.utils.logger import logger
from .adv_schema import PLACEMENT_ELEMENT, REQUIRED_PART_ELEMENTS, InstrumentSettings, PartPlacement
from .path_resolver import PathPlan, ResolvedSample

GZIP_MAGIC = b"\x1f\x8b"


@dataclass
class DecodedPreset:
    model: MappingModel
    settings: InstrumentSettings
    plan: PathPlan


# -- Value readers -----------------------------------------------------------

def _attr(parent: ET.Element, path: str) -> Optional[str]:
    element = parent.find(path)
    if element is None:
        return None
    return element.get("Value")


def _required(parent: ET.Element, path: str, context: str) -> str:
    value = _attr(parent, path)
    if value is None:
        raise MalformedDocumentError(f"{context}: missing {path}")
    return value


def _to_int(text: str, path: str, context: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise MalformedDocumentError(f"{context}: {path} is not an integer: {text!r}") from None


def _to_float(text: str, path: str, context: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise MalformedDocumentError(f"{context}: {path} is not a number: {text!r}") from None


def _int(parent, path, context, default=None, bounds: Optional[Tuple[int, int]] = None) -> int:
    text = _attr(parent, path)
    if text is None:
        if default is None:
            raise MalformedDocumentError(f"{context}: missing {path}")
        return default
    value = _to_int(text, path, context)
    if bounds is not None and not (bounds[0] <= value <= bounds[1]):
        raise MalformedDocumentError(f"{context}: {path}={value} outside {bounds[0]}-{bounds[1]}")
    return value


def _float(parent, path, context, default: float) -> float:
    text = _attr(parent, path)
    return default if text is None else _to_float(text, path, context)


def _bool(parent, path, default: bool) -> bool:
    text = _attr(parent, path)
    return default if text is None else text.strip().lower() == "true"


def _range(parent, tag: str, context: str, low: int, high: int) -> Tuple[int, int, int, int]:
    bounds = (low, high)
    lo = _int(parent, f"{tag}/Min", context, bounds=bounds)
    hi = _int(parent, f"{tag}/Max", context, bounds=bounds)
    if lo > hi:
        raise MalformedDocumentError(f"{context}: {tag} min {lo} exceeds max {hi}")
    xlo = _int(parent, f"{tag}/CrossfadeMin", context, default=lo, bounds=bounds)
    xhi = _int(parent, f"{tag}/CrossfadeMax", context, default=hi, bounds=bounds)
    return lo, hi, xlo, xhi


def _loop(parent, tag: str, context: str, default_mode: int) -> LoopSettings:
    if parent.find(tag) is None:
        return LoopSettings(mode=default_mode)
    return LoopSettings(
        start=_int(parent, f"{tag}/Start", context, default=0),
        end=_int(parent, f"{tag}/End", context, default=0),
        mode=_int(parent, f"{tag}/Mode", context, default=default_mode),
        crossfade=_float(parent, f"{tag}/Crossfade", context, 0.0),
        detune=_float(parent, f"{tag}/Detune", context, 0.0),
    )


# -- Document ----------------------------------------------------------------

def _parse_root(data: bytes) -> ET.Element:
    if data[:2] == GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise MalformedDocumentError(f"Corrupt gzip stream: {e}") from e
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise MalformedDocumentError(f"Unparsable document: {e}") from e


def _sample_path(element: ET.Element, relative_path: str, preset_dir: Optional[PurePath]) -> str:
    path = _attr(element, "SampleRef/FileRef/Path")
    if path:
        return path
    if preset_dir is not None:
        return str(preset_dir.joinpath(*relative_path.split("/")))
    return relative_path


def decode_part(element: ET.Element, preset_dir: Optional[PurePath] = None) -> Tuple[MultiSamplePart, str]:
    """
    One <MultiSamplePart> -> (part, relative path).

    Raises:
        MalformedDocumentError: missing required data or out-of-range values
    """
    part_id_text = element.get("Id")
    context = f"MultiSamplePart Id={part_id_text}"
    if part_id_text is None:
        raise MalformedDocumentError("MultiSamplePart without Id")
    part_id = _to_int(part_id_text, "Id", context)
    if part_id < 0:
        raise MalformedDocumentError(f"{context}: Id must be >= 0")

    for tag in REQUIRED_PART_ELEMENTS:
        if element.find(tag) is None:
            raise MalformedDocumentError(f"{context}: missing {tag}")

    name = _required(element, "Name", context)
    relative_path = _required(element, "SampleRef/FileRef/RelativePath", context)
    if not relative_path:
        raise MalformedDocumentError(f"{context}: empty RelativePath")

    key_min, key_max, _, _ = _range(element, "KeyRange", context, MIDI_MIN, MIDI_MAX)
    velocity = VelocityRange(*_range(element, "VelocityRange", context, VELOCITY_MIN, VELOCITY_MAX))

    root_text = _attr(element, "RootKey")
    is_pitched = root_text is not None
    root_key = _int(element, "RootKey", context, bounds=(MIDI_MIN, MIDI_MAX)) if is_pitched else None

    duration_text = _attr(element, "SampleRef/DefaultDuration")
    segment_start = _int(element, "SampleStart", context)
    segment_end = _int(element, "SampleEnd", context)
    if segment_start < 0 or segment_end < segment_start:
        raise MalformedDocumentError(f"{context}: bad segment {segment_start}-{segment_end}")
    if duration_text is None:
        # Older documents may omit the duration; the segment end is the best bound left
        frame_count = segment_end
    else:
        frame_count = _to_int(duration_text, "SampleRef/DefaultDuration", context)
        if segment_end > frame_count:
            raise MalformedDocumentError(
                f"{context}: SampleEnd {segment_end} exceeds DefaultDuration {frame_count}")

    source = _sample_path(element, relative_path, preset_dir)
    part = MultiSamplePart(
        part_id=part_id,
        name=name,
        key_range_min=key_min,
        key_range_max=key_max,
        velocity_range=velocity,
        source_path=source,
        original_path=source,
        sample_rate=_float(element, "SampleRef/DefaultSampleRate", context, DEFAULT_SAMPLE_RATE),
        frame_count=frame_count,
        file_size=_int(element, "SampleRef/FileRef/OriginalFileSize", context, default=0),
        last_modified=_int(element, "SampleRef/LastModDate", context, default=0),
        segment_start=segment_start,
        segment_end=segment_end,
        is_pitched=is_pitched,
        original_root_key=root_key,
        detune=_int(element, "Detune", context, default=0),
        tune_scale=_int(element, "TuneScale", context, default=DEFAULT_TUNE_SCALE),
        panorama=_float(element, "Panorama", context, 0.0),
        volume=_float(element, "Volume", context, DEFAULT_PART_VOLUME),
        sustain_loop=_loop(element, "SustainLoop", context, SUSTAIN_LOOP_DEFAULT_MODE),
        release_loop=_loop(element, "ReleaseLoop", context, RELEASE_LOOP_DEFAULT_MODE),
    )
    return part, relative_path


def decode_placement(element: ET.Element, part: MultiSamplePart) -> Optional[PartPlacement]:
    """
    The MappingLayer record of a part, or None when the document has none.

    Raises:
        MalformedDocumentError: record present but incomplete or out of range
    """
    placement = element.find(PLACEMENT_ELEMENT)
    if placement is None:
        return None
    context = f"MultiSamplePart Id={part.part_id} {PLACEMENT_ELEMENT}"
    key_id = _int(placement, "Key", context, bounds=(MIDI_MIN, MIDI_MAX))
    layer_index = _int(placement, "Index", context)
    if layer_index < 0:
        raise MalformedDocumentError(f"{context}: Index must be >= 0")
    if placement.find("VelocityRange") is None:
        velocity = part.velocity_range
    else:
        velocity = VelocityRange(*_range(placement, "VelocityRange", context, VELOCITY_MIN, VELOCITY_MAX))
    return PartPlacement(key_id, layer_index, velocity)


def owning_key(part: MultiSamplePart) -> int:
    """The key a part without a MappingLayer record is filed under."""
    return part.original_root_key if part.is_pitched else part.key_range_min


def _layer_signature(part: MultiSamplePart) -> tuple:
    return (owning_key(part), part.velocity_range.as_tuple(), part.is_pitched,
            part.original_root_key, part.key_range_min, part.key_range_max)


def decode_settings(root: ET.Element, device: ET.Element) -> InstrumentSettings:
    """Device-level settings; anything missing falls back to the defaults."""
    d = DEVICE_DEFAULTS
    ctx = "MultiSampler"
    return InstrumentSettings(
        name=_attr(device, "UserName") or InstrumentSettings.name,
        creator=root.get("Creator", ADV_HEADER['Creator']),
        volume_db=_float(device, "VolumeAndPan/Volume/Manual", ctx, d['volume_db']),
        panorama=_float(device, "VolumeAndPan/Panorama/Manual", ctx, d['panorama']),
        num_voices=_int(device, "Globals/NumVoices", ctx, default=d['num_voices']),
        transpose=_int(device, "Pitch/TransposeKey/Manual", ctx, default=d['transpose']),
        detune=_float(device, "Pitch/TransposeFine/Manual", ctx, d['detune']),
        filter_on=_bool(device, "Filter/IsOn/Manual", d['filter_on']),
        filter_type=_int(device, "Filter/Slot/Value/SimplerFilter/Type/Manual", ctx,
                         default=d['filter_type']),
        filter_freq=_float(device, "Filter/Slot/Value/SimplerFilter/Freq/Manual", ctx, d['filter_freq']),
        filter_res=_float(device, "Filter/Slot/Value/SimplerFilter/Res/Manual", ctx, d['filter_res']),
        load_in_ram=_bool(device, "Player/MultiSampleMap/LoadInRam", d['load_in_ram']),
        layer_crossfade=_int(device, "Player/MultiSampleMap/LayerCrossfade", ctx,
                             default=d['layer_crossfade']),
        round_robin_mode=_int(device, "Player/MultiSampleMap/RoundRobinMode", ctx,
                              default=d['round_robin_mode']),
        round_robin_reset_period=_int(device, "Player/MultiSampleMap/RoundRobinResetPeriod", ctx,
                                      default=d['round_robin_reset_period']),
        round_robin_seed=_int(device, "Player/MultiSampleMap/RoundRobinRandomSeed", ctx,
                              default=d['round_robin_seed']),
    )


def decode_document(data: bytes, preset_path=None) -> DecodedPreset:
    """
    Parse a preset document.

    Args:
        data: gzip-compressed or plain XML bytes
        preset_path: Where the document lives; used to rebuild absolute
            sample paths when the document carries none

    Raises:
        MalformedDocumentError: structural violations of any kind
    """
    root = _parse_root(data)
    device = root if root.tag == "MultiSampler" else root.find("MultiSampler")
    if device is None:
        raise MalformedDocumentError("Document has no MultiSampler device")
    sample_parts = device.find("Player/MultiSampleMap/SampleParts")
    if sample_parts is None:
        raise MalformedDocumentError("MultiSampler has no SampleParts")

    preset_dir = PurePath(str(preset_path)).parent if preset_path is not None else None
    decoded = []
    for element in sample_parts.findall("MultiSamplePart"):
        part, relative_path = decode_part(element, preset_dir)
        decoded.append((part, relative_path, decode_placement(element, part)))

    model = MappingModel()
    plan = PathPlan(preset_path=str(preset_path) if preset_path is not None else "")
    placed: Dict[Tuple[int, int], VelocityLayer] = {}
    current_layer = None
    current_signature = None
    for part, relative_path, placement in decoded:
        if placement is not None:
            slot = (placement.key_id, placement.layer_index)
            layer = placed.get(slot)
            if layer is None:
                layer = placed[slot] = model.add_velocity_layer(placement.key_id, placement.velocity_range)
            current_layer = current_signature = None
        else:
            signature = _layer_signature(part)
            if current_layer is None or signature != current_signature:
                current_layer = model.add_velocity_layer(owning_key(part), part.velocity_range)
                current_signature = signature
            layer = current_layer
        try:
            model.restore_part(layer.layer_id, part)
        except IdentityCollisionError as e:
            raise MalformedDocumentError(f"Duplicate MultiSamplePart Id {part.part_id}",
                                         part_id=part.part_id) from e
        plan.entries[part.part_id] = ResolvedSample(
            relative_path=relative_path,
            destination=part.source_path,
            source=part.source_path,
        )

    settings = decode_settings(root, device)
    logger.adv(f"Decoded {len(decoded)} parts on {len(model.mapped_keys())} keys",
               details=plan.preset_path or None)
    return DecodedPreset(model=model, settings=settings, plan=plan)
