"""
Tests for the Sampler preset encoder.
"""

import gzip
import xml.etree.ElementTree as ET

import pytest

from multisampler.model import EmptyMappingError, MappingModel, UnresolvedPathError, VelocityRange
from multisampler.presets import InstrumentSettings, encode_document, encode_preset
from multisampler.presets.adv_encoder import gzip_bytes
from tests.helpers.mapping_helpers import part_elements, part_values, value


def _encode(model, resolver, settings=None):
    plan = resolver.resolve_all(model.parts())
    return encode_document(model, plan, settings)


class TestSingleSample:
    """Key 60, full velocity, /tmp/kick.wav (44100 Hz, 4410 frames)."""

    @pytest.fixture
    def element(self, model, kick_ref, resolver):
        model.add_sample(60, kick_ref)
        elements = part_elements(_encode(model, resolver))
        assert len(elements) == 1
        return elements[0]

    def test_part_values(self, element):
        assert part_values(element) == {
            "id": "1",
            "name": "kick",
            "key_min": "60",
            "key_max": "60",
            "vel_min": "0",
            "vel_max": "127",
            "root_key": None,
            "start": "0",
            "end": "4410",
            "relative_path": "Samples/Imported/kick.wav",
            "relative_path_type": "3",
            "sample_rate": "44100",
        }

    def test_no_root_key_when_fixed(self, element):
        assert element.find("RootKey") is None

    def test_key_range_crossfades_equal_range(self, element):
        assert value(element, "KeyRange/CrossfadeMin") == "60"
        assert value(element, "KeyRange/CrossfadeMax") == "60"

    def test_selector_range_full(self, element):
        assert value(element, "SelectorRange/Min") == "0"
        assert value(element, "SelectorRange/Max") == "127"

    def test_file_metadata(self, element, preset_dir):
        assert value(element, "SampleRef/FileRef/OriginalFileSize") == "8864"
        assert value(element, "SampleRef/LastModDate") == "1700000000"
        assert value(element, "SampleRef/DefaultDuration") == "4410"
        assert value(element, "SampleRef/FileRef/Path") == str(
            preset_dir / "Samples" / "Imported" / "kick.wav")

    def test_loops(self, element):
        assert value(element, "SustainLoop/Mode") == "0"
        assert value(element, "ReleaseLoop/Mode") == "3"

    def test_element_order(self, element):
        tags = [child.tag for child in element]
        assert tags[:6] == ["LomId", "Name", "Selection", "IsActive", "Solo", "KeyRange"]
        assert tags.index("VelocityRange") < tags.index("SampleStart") < tags.index("SampleRef")
        assert tags[-2:] == ["SampleRef", "MappingLayer"]

    def test_placement(self, element):
        assert value(element, "MappingLayer/Key") == "60"
        assert value(element, "MappingLayer/Index") == "0"
        assert value(element, "MappingLayer/VelocityRange/Min") == "0"
        assert value(element, "MappingLayer/VelocityRange/Max") == "127"


class TestDocument:
    """Device-level structure."""

    def test_header(self, populated_model, resolver):
        root = ET.fromstring(_encode(populated_model, resolver))
        assert root.tag == "Ableton"
        assert root.get("MajorVersion") == "5"
        assert root.get("MinorVersion") == "12.0_12120"
        assert root.get("Creator") == "Multisampler"
        assert root.find("MultiSampler") is not None

    def test_xml_declaration(self, populated_model, resolver):
        assert _encode(populated_model, resolver).startswith(b"<?xml version='1.0' encoding='UTF-8'?>")

    def test_settings_written(self, populated_model, resolver):
        settings = InstrumentSettings(name="Drums", num_voices=16, round_robin_seed=7,
                                      volume_db=-6.5, filter_on=False)
        root = ET.fromstring(_encode(populated_model, resolver, settings))
        device = root.find("MultiSampler")
        assert value(device, "UserName") == "Drums"
        assert value(device, "Globals/NumVoices") == "16"
        assert value(device, "Player/MultiSampleMap/RoundRobinRandomSeed") == "7"
        assert value(device, "VolumeAndPan/Volume/Manual") == "-6.5"
        assert value(device, "Filter/IsOn/Manual") == "false"

    def test_round_robin_flag_on(self, populated_model, resolver):
        device = ET.fromstring(_encode(populated_model, resolver)).find("MultiSampler")
        assert value(device, "Player/MultiSampleMap/RoundRobin") == "true"
        assert value(device, "Player/MultiSampleMap/RoundRobinMode") == "2"

    def test_round_robin_flag_off(self, model, kick_ref, resolver):
        model.add_sample(60, kick_ref)
        device = ET.fromstring(_encode(model, resolver)).find("MultiSampler")
        assert value(device, "Player/MultiSampleMap/RoundRobin") == "false"
        assert value(device, "Player/MultiSampleMap/RoundRobinMode") == "0"


class TestEmissionOrder:
    """Keys ascending, loudest layer first, slots by index, no holes."""

    def test_populated_order(self, populated_model, resolver):
        elements = part_elements(_encode(populated_model, resolver))
        assert [e.get("Id") for e in elements] == ["1", "2", "3", "4"]

    def test_pitched_part_has_root_key(self, populated_model, resolver):
        element = part_elements(_encode(populated_model, resolver))[3]
        assert value(element, "RootKey") == "60"
        assert value(element, "KeyRange/Min") == "48"
        assert value(element, "KeyRange/Max") == "72"

    def test_holes_never_emitted(self, model, kick_ref, resolver):
        layer = model.add_velocity_layer(60)
        part = model.assign_round_robin_slot(layer.layer_id, 3, kick_ref)
        elements = part_elements(_encode(model, resolver))
        assert [e.get("Id") for e in elements] == [str(part.part_id)]

    def test_keys_ascending(self, model, kick_ref, snare_ref, resolver):
        model.add_sample(72, kick_ref)
        model.add_sample(24, snare_ref)
        elements = part_elements(_encode(model, resolver))
        assert [value(e, "KeyRange/Min") for e in elements] == ["24", "72"]

    def test_layer_positions(self, populated_model, resolver):
        elements = part_elements(_encode(populated_model, resolver))
        assert [(value(e, "MappingLayer/Key"), value(e, "MappingLayer/Index")) for e in elements] == [
            ("36", "0"), ("36", "0"), ("36", "1"), ("60", "0")]

    def test_empty_layers_not_counted(self, model, kick_ref, resolver):
        model.add_velocity_layer(60, VelocityRange.span(100, 127))
        layer = model.add_velocity_layer(60, VelocityRange.span(0, 99))
        model.assign_round_robin_slot(layer.layer_id, 0, kick_ref)
        element = part_elements(_encode(model, resolver))[0]
        assert value(element, "MappingLayer/Index") == "0"
        assert value(element, "MappingLayer/VelocityRange/Max") == "99"


class TestDeterminism:
    """Identical state gives identical bytes."""

    def test_document_repeatable(self, populated_model, resolver):
        assert _encode(populated_model, resolver) == _encode(populated_model, resolver)

    def test_snapshot_encodes_identically(self, populated_model, resolver):
        assert _encode(populated_model, resolver) == _encode(populated_model.snapshot(), resolver)

    def test_gzip_repeatable(self, populated_model, resolver):
        plan = resolver.resolve_all(populated_model.parts())
        assert encode_preset(populated_model, plan) == encode_preset(populated_model, plan)

    def test_gzip_header_has_no_timestamp(self):
        data = gzip_bytes(b"<Ableton/>")
        assert data[4:8] == b"\x00\x00\x00\x00"
        assert gzip.decompress(data) == b"<Ableton/>"

    def test_preset_is_gzipped_document(self, populated_model, resolver):
        plan = resolver.resolve_all(populated_model.parts())
        assert gzip.decompress(encode_preset(populated_model, plan)) == encode_document(
            populated_model, plan)


class TestErrors:
    """Encoder preconditions."""

    def test_empty_mapping(self, model, resolver):
        """128 keys, no layers."""
        with pytest.raises(EmptyMappingError):
            _encode(model, resolver)

    def test_unresolved_path(self, populated_model, resolver):
        plan = resolver.resolve_all(populated_model.parts())
        del plan.entries[3]
        with pytest.raises(UnresolvedPathError) as exc:
            encode_document(populated_model, plan)
        assert exc.value.part_id == 3
        assert exc.value.key_id == 36

    def test_empty_layer_only(self, resolver):
        model = MappingModel()
        model.add_velocity_layer(60)
        with pytest.raises(EmptyMappingError):
            _encode(model, resolver)
