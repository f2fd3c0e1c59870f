"""Pytest configuration - shared fixtures for mapping and preset tests.

File references are plain values: the mapping core never opens audio, so
the paths below do not need to exist.
"""
from __future__ import annotations

import pytest

from multisampler.model import MappingModel, SampleFileRef, VelocityRange
from multisampler.presets import PathResolver


@pytest.fixture
def kick_ref():
    """/tmp/kick.wav, 44100 Hz, 4410 frames."""
    return SampleFileRef(path="/tmp/kick.wav", sample_rate=44100.0, frame_count=4410,
                         file_size=8864, last_modified=1700000000)


@pytest.fixture
def snare_ref():
    return SampleFileRef(path="/tmp/snare.wav", sample_rate=48000.0, frame_count=9600)


@pytest.fixture
def model():
    """Empty model: 128 keys, no layers."""
    return MappingModel()


@pytest.fixture
def populated_model(kick_ref, snare_ref):
    """
    Key 36: two velocity layers, the loud one with two round robins.
    Key 60: one pitched full-range layer.
    """
    m = MappingModel()
    loud = m.add_velocity_layer(36, VelocityRange.span(64, 127))
    soft = m.add_velocity_layer(36, VelocityRange.span(0, 63))
    m.assign_round_robin_slot(loud.layer_id, 0, kick_ref)
    m.assign_round_robin_slot(loud.layer_id, 1,
                              SampleFileRef("/tmp/kick_2.wav", 44100.0, 5000))
    m.assign_round_robin_slot(soft.layer_id, 0,
                              SampleFileRef("/tmp/kick_soft.wav", 44100.0, 3000))
    m.add_sample(60, snare_ref)
    m.apply_pitch_settings(m.layers_for_key(60)[0].layer_id, True,
                           root_key=60, key_range_min=48, key_range_max=72)
    return m


@pytest.fixture
def preset_dir(tmp_path):
    """Directory an exported preset lands in."""
    path = tmp_path / "Presets"
    path.mkdir()
    return path


@pytest.fixture
def resolver(preset_dir):
    return PathResolver(preset_dir / "Drums.adv")
