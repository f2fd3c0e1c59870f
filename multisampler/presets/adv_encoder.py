"""
Sampler preset (.adv) encoder.

Builds the host document from a validated MappingModel and a PathPlan:

    <Ableton ...>
      <MultiSampler>
        <Player><MultiSampleMap><SampleParts>
          <MultiSamplePart Id="<part_id>"> ... </MultiSamplePart>   one per occupied slot
        </SampleParts> ...round-robin settings... </MultiSampleMap></Player>
        <Pitch/> <Filter/> <VolumeAndPan/> <Globals/>
      </MultiSampler>
    </Ableton>

Parts are emitted keys ascending, layers in stored order, slots by index;
holes are skipped. RootKey is written only for pitched parts. Each part ends
with a MappingLayer element (owning key, layer position on that key, layer
velocity range) so the layering survives a round trip. The output is
a pure function of its inputs: no clocks, no random ids, gzip mtime 0.
"""

import gzip
import io
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

from multisampler.config import ADV_HEADER, RELATIVE_PATH_TYPE, SAMPLE_FILE_TYPE, VELOCITY_MAX, VELOCITY_MIN
from multisampler.model.errors import EmptyMappingError, UnresolvedPathError
from multisampler.model.mapping import LoopSettings, MappingModel, MultiSamplePart
from multisampler.utils.logger import logger
from .adv_schema import PLACEMENT_ELEMENT, InstrumentSettings, PartPlacement
from .path_resolver import PathPlan, ResolvedSample
from .preset_utils import format_number


def _value(parent: ET.Element, tag: str, value) -> ET.Element:
    """<tag Value="..."/>"""
    text = value if isinstance(value, str) else format_number(value)
    return ET.SubElement(parent, tag, Value=text)


def _manual(parent: ET.Element, tag: str, value) -> ET.Element:
    """<tag><Manual Value="..."/></tag>"""
    element = ET.SubElement(parent, tag)
    _value(element, "Manual", value)
    return element


def _range(parent: ET.Element, tag: str, low: int, high: int, xfade_low: int, xfade_high: int):
    element = ET.SubElement(parent, tag)
    _value(element, "Min", low)
    _value(element, "Max", high)
    _value(element, "CrossfadeMin", xfade_low)
    _value(element, "CrossfadeMax", xfade_high)


def _loop(parent: ET.Element, tag: str, loop: LoopSettings):
    element = ET.SubElement(parent, tag)
    _value(element, "Start", loop.start)
    _value(element, "End", loop.end)
    _value(element, "Mode", loop.mode)
    _value(element, "Crossfade", float(loop.crossfade))
    _value(element, "Detune", float(loop.detune))


def _sample_ref(parent: ET.Element, part: MultiSamplePart, resolved: ResolvedSample):
    sample_ref = ET.SubElement(parent, "SampleRef")
    file_ref = ET.SubElement(sample_ref, "FileRef")
    _value(file_ref, "RelativePathType", RELATIVE_PATH_TYPE)
    _value(file_ref, "RelativePath", resolved.relative_path)
    _value(file_ref, "Path", resolved.destination)
    _value(file_ref, "Type", SAMPLE_FILE_TYPE)
    _value(file_ref, "LivePackName", "")
    _value(file_ref, "LivePackId", "")
    _value(file_ref, "OriginalFileSize", part.file_size)
    _value(file_ref, "OriginalCrc", 0)
    _value(sample_ref, "LastModDate", part.last_modified)
    ET.SubElement(sample_ref, "SourceContext")
    _value(sample_ref, "SampleUsageHint", 0)
    _value(sample_ref, "DefaultDuration", part.frame_count)
    _value(sample_ref, "DefaultSampleRate", float(part.sample_rate))


def _placement(parent: ET.Element, placement: PartPlacement):
    element = ET.SubElement(parent, PLACEMENT_ELEMENT)
    _value(element, "Key", placement.key_id)
    _value(element, "Index", placement.layer_index)
    vr = placement.velocity_range
    _range(element, "VelocityRange", vr.min, vr.max, vr.crossfade_min, vr.crossfade_max)


def build_part_element(part: MultiSamplePart, resolved: ResolvedSample,
                       placement: Optional[PartPlacement] = None) -> ET.Element:
    """One <MultiSamplePart>; placement records the owning key and layer."""
    element = ET.Element("MultiSamplePart", {
        "Id": str(part.part_id),
        "HasImportedSlicePoints": "true",
        "NeedsAnalysisData": "true",
    })
    _value(element, "LomId", 0)
    _value(element, "Name", part.name)
    _value(element, "Selection", False)
    _value(element, "IsActive", True)
    _value(element, "Solo", False)
    _range(element, "KeyRange", part.key_range_min, part.key_range_max,
           part.key_range_min, part.key_range_max)
    vr = part.velocity_range
    _range(element, "VelocityRange", vr.min, vr.max, vr.crossfade_min, vr.crossfade_max)
    _range(element, "SelectorRange", VELOCITY_MIN, VELOCITY_MAX, VELOCITY_MIN, VELOCITY_MAX)
    if part.is_pitched:
        _value(element, "RootKey", part.root_key)
    _value(element, "Detune", part.detune)
    _value(element, "TuneScale", part.tune_scale)
    _value(element, "Panorama", float(part.panorama))
    _value(element, "Volume", float(part.volume))
    _value(element, "Link", False)
    _value(element, "SampleStart", part.segment_start)
    _value(element, "SampleEnd", part.segment_end)
    _loop(element, "SustainLoop", part.sustain_loop)
    _loop(element, "ReleaseLoop", part.release_loop)
    _sample_ref(element, part, resolved)
    if placement is not None:
        _placement(element, placement)
    return element


def collect_parts(model: MappingModel, plan: PathPlan) -> List[Tuple[MultiSamplePart, PartPlacement]]:
    """
    (part, placement) pairs in emission order.

    Raises:
        EmptyMappingError: nothing mapped
        UnresolvedPathError: a part has no entry in the plan
    """
    parts = []
    for key, layer, index, part_id in model.walk():
        filled = [l for l in key.layers if not l.is_empty]
        placement = PartPlacement(key.midi_note, filled.index(layer), layer.velocity_range)
        part = model.part(part_id)
        if part_id not in plan:
            raise UnresolvedPathError(
                f"Part '{part.name}' (key {key.midi_note}, layer {layer.layer_id}, rr {index}) "
                f"has no resolved sample path",
                key_id=key.midi_note, layer_id=layer.layer_id, part_id=part_id)
        parts.append((part, placement))
    if not parts:
        raise EmptyMappingError("No key has any sample; nothing to export")
    return parts


def _uses_round_robin(model: MappingModel) -> bool:
    return any(layer.active_sample_count > 1 for key in model.keys for layer in key.layers)


def build_document(model: MappingModel, plan: PathPlan,
                   settings: Optional[InstrumentSettings] = None) -> ET.Element:
    """Build the <Ableton> element tree."""
    settings = settings or InstrumentSettings()
    parts = collect_parts(model, plan)

    header = dict(ADV_HEADER)
    header["Creator"] = settings.creator
    root = ET.Element("Ableton", header)

    device = ET.SubElement(root, "MultiSampler")
    _value(device, "LomId", 0)
    _value(device, "UserName", settings.name)
    _value(device, "Annotation", "")

    player = ET.SubElement(device, "Player")
    sample_map = ET.SubElement(player, "MultiSampleMap")
    sample_parts = ET.SubElement(sample_map, "SampleParts")
    for part, placement in parts:
        sample_parts.append(build_part_element(part, plan.get(part.part_id), placement))

    round_robin = _uses_round_robin(model)
    _value(sample_map, "LoadInRam", settings.load_in_ram)
    _value(sample_map, "LayerCrossfade", settings.layer_crossfade)
    ET.SubElement(sample_map, "SourceContext")
    _value(sample_map, "RoundRobin", round_robin)
    _value(sample_map, "RoundRobinMode", settings.round_robin_mode if round_robin else 0)
    _value(sample_map, "RoundRobinResetPeriod", settings.round_robin_reset_period)
    _value(sample_map, "RoundRobinRandomSeed", settings.round_robin_seed)

    pitch = ET.SubElement(device, "Pitch")
    _manual(pitch, "TransposeKey", settings.transpose)
    _manual(pitch, "TransposeFine", float(settings.detune))

    filt = ET.SubElement(device, "Filter")
    _manual(filt, "IsOn", settings.filter_on)
    slot_value = ET.SubElement(ET.SubElement(filt, "Slot"), "Value")
    simpler_filter = ET.SubElement(slot_value, "SimplerFilter", Id="0")
    _manual(simpler_filter, "Type", settings.filter_type)
    _manual(simpler_filter, "Freq", float(settings.filter_freq))
    _manual(simpler_filter, "Res", float(settings.filter_res))

    volume_pan = ET.SubElement(device, "VolumeAndPan")
    _manual(volume_pan, "Volume", float(settings.volume_db))
    _manual(volume_pan, "Panorama", float(settings.panorama))

    globals_ = ET.SubElement(device, "Globals")
    _value(globals_, "NumVoices", settings.num_voices)

    return root


def encode_document(model: MappingModel, plan: PathPlan,
                    settings: Optional[InstrumentSettings] = None) -> bytes:
    """
    Serialize to UTF-8 XML bytes.

    Identical model state, plan and settings always give identical bytes.
    """
    root = build_document(model, plan, settings)
    ET.indent(root, space="\t")
    data = ET.tostring(root, encoding="UTF-8", xml_declaration=True) + b"\n"
    logger.adv(f"Encoded {len(root.find('MultiSampler/Player/MultiSampleMap/SampleParts'))} parts",
               details=f"{len(data)} bytes")
    return data


def gzip_bytes(data: bytes) -> bytes:
    """Deterministic gzip: no filename, mtime 0."""
    buffer = io.BytesIO()
    with gzip.GzipFile(filename="", mode="wb", fileobj=buffer, mtime=0) as gz:
        gz.write(data)
    return buffer.getvalue()


def encode_preset(model: MappingModel, plan: PathPlan,
                  settings: Optional[InstrumentSettings] = None) -> bytes:
    """Serialize to the on-disk .adv form (gzip-compressed XML)."""
    return gzip_bytes(encode_document(model, plan, settings))
