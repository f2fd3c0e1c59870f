"""
Sampler preset schema: device-level settings and document constants.

Part-level data comes from the mapping model; everything the host needs
around the sample map (volume, voices, filter, round-robin behaviour) is
an InstrumentSettings.
"""

from dataclasses import dataclass
import json
from typing import NamedTuple

from multisampler.config import ADV_HEADER, DEVICE_DEFAULTS, NUM_VOICES_OPTIONS
from multisampler.model.mapping import VelocityRange

# Element names the decoder requires on every MultiSamplePart
REQUIRED_PART_ELEMENTS = ("Name", "SampleRef", "KeyRange", "VelocityRange", "SampleStart", "SampleEnd")

# Written after SampleRef: the key and stored layer position a part belongs to.
# Other tools omit it; the decoder then falls back to grouping by signature.
PLACEMENT_ELEMENT = "MappingLayer"


class PartPlacement(NamedTuple):
    """Where a part sits in the model: its key and its layer's stored position."""
    key_id: int
    layer_index: int          # among the key's non-empty layers
    velocity_range: VelocityRange


ROUND_ROBIN_MODES = (0, 1, 2)   # 0=off, 1=random, 2=cycle
FILTER_TYPES = 5
VOLUME_DB_MIN = -70.0
VOLUME_DB_MAX = 6.0
TRANSPOSE_RANGE = 48


@dataclass
class InstrumentSettings:
    """Device settings written around the sample map."""
    name: str = "Multisample"
    creator: str = ADV_HEADER['Creator']
    volume_db: float = DEVICE_DEFAULTS['volume_db']
    panorama: float = DEVICE_DEFAULTS['panorama']
    num_voices: int = DEVICE_DEFAULTS['num_voices']
    transpose: int = DEVICE_DEFAULTS['transpose']
    detune: float = DEVICE_DEFAULTS['detune']
    filter_on: bool = DEVICE_DEFAULTS['filter_on']
    filter_type: int = DEVICE_DEFAULTS['filter_type']
    filter_freq: float = DEVICE_DEFAULTS['filter_freq']
    filter_res: float = DEVICE_DEFAULTS['filter_res']
    load_in_ram: bool = DEVICE_DEFAULTS['load_in_ram']
    layer_crossfade: int = DEVICE_DEFAULTS['layer_crossfade']
    round_robin_mode: int = DEVICE_DEFAULTS['round_robin_mode']
    round_robin_reset_period: int = DEVICE_DEFAULTS['round_robin_reset_period']
    round_robin_seed: int = DEVICE_DEFAULTS['round_robin_seed']

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "creator": self.creator,
            "volume_db": self.volume_db,
            "panorama": self.panorama,
            "num_voices": self.num_voices,
            "transpose": self.transpose,
            "detune": self.detune,
            "filter": {
                "on": self.filter_on,
                "type": self.filter_type,
                "freq": self.filter_freq,
                "res": self.filter_res,
            },
            "load_in_ram": self.load_in_ram,
            "layer_crossfade": self.layer_crossfade,
            "round_robin": {
                "mode": self.round_robin_mode,
                "reset_period": self.round_robin_reset_period,
                "seed": self.round_robin_seed,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InstrumentSettings":
        filt = data.get("filter", {})
        rr = data.get("round_robin", {})
        return cls(
            name=data.get("name", "Multisample"),
            creator=data.get("creator", ADV_HEADER['Creator']),
            volume_db=data.get("volume_db", DEVICE_DEFAULTS['volume_db']),
            panorama=data.get("panorama", DEVICE_DEFAULTS['panorama']),
            num_voices=data.get("num_voices", DEVICE_DEFAULTS['num_voices']),
            transpose=data.get("transpose", DEVICE_DEFAULTS['transpose']),
            detune=data.get("detune", DEVICE_DEFAULTS['detune']),
            filter_on=filt.get("on", DEVICE_DEFAULTS['filter_on']),
            filter_type=filt.get("type", DEVICE_DEFAULTS['filter_type']),
            filter_freq=filt.get("freq", DEVICE_DEFAULTS['filter_freq']),
            filter_res=filt.get("res", DEVICE_DEFAULTS['filter_res']),
            load_in_ram=data.get("load_in_ram", DEVICE_DEFAULTS['load_in_ram']),
            layer_crossfade=data.get("layer_crossfade", DEVICE_DEFAULTS['layer_crossfade']),
            round_robin_mode=rr.get("mode", DEVICE_DEFAULTS['round_robin_mode']),
            round_robin_reset_period=rr.get("reset_period", DEVICE_DEFAULTS['round_robin_reset_period']),
            round_robin_seed=rr.get("seed", DEVICE_DEFAULTS['round_robin_seed']),
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "InstrumentSettings":
        return cls.from_dict(json.loads(json_str))


def validate_settings(settings: InstrumentSettings) -> tuple:
    """
    Validate device settings.

    Returns:
        (is_valid, errors)
    """
    errors = []
    if not (VOLUME_DB_MIN <= settings.volume_db <= VOLUME_DB_MAX):
        errors.append(f"volume_db must be {VOLUME_DB_MIN}-{VOLUME_DB_MAX}, got {settings.volume_db}")
    if not (-1.0 <= settings.panorama <= 1.0):
        errors.append(f"panorama must be -1..1, got {settings.panorama}")
    if settings.num_voices not in NUM_VOICES_OPTIONS:
        errors.append(f"num_voices must be one of {NUM_VOICES_OPTIONS}, got {settings.num_voices}")
    if not (-TRANSPOSE_RANGE <= settings.transpose <= TRANSPOSE_RANGE):
        errors.append(f"transpose must be +/-{TRANSPOSE_RANGE}, got {settings.transpose}")
    if not (0 <= settings.filter_type < FILTER_TYPES):
        errors.append(f"filter_type must be 0-{FILTER_TYPES - 1}, got {settings.filter_type}")
    if settings.round_robin_mode not in ROUND_ROBIN_MODES:
        errors.append(f"round_robin_mode must be one of {ROUND_ROBIN_MODES}, got {settings.round_robin_mode}")
    if settings.round_robin_reset_period < 0:
        errors.append(f"round_robin_reset_period must be >= 0, got {settings.round_robin_reset_period}")
    return len(errors) == 0, errors
