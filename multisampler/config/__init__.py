"""
Central Configuration
All constants for the mapping model and the Sampler preset format in one place
"""

APP_VERSION = "0.1.0"

# === MIDI ===
MIDI_MIN = 0
MIDI_MAX = 127
NUM_KEYS = 128

# Ableton numbering: C3 = 60, so MIDI 0 is C-2
NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']
OCTAVE_OFFSET = -2
BLACK_KEY_INDICES = (1, 3, 6, 8, 10)

# Note letter -> semitone within the octave (filename parsing)
NOTE_SEMITONES = {'C': 0, 'D': 2, 'E': 4, 'F': 5, 'G': 7, 'A': 9, 'B': 11}

# === VELOCITY ===
VELOCITY_MIN = 0
VELOCITY_MAX = 127
DEFAULT_MAPPING_VELOCITY = 100   # add_sample targets the first layer covering this
CROSSFADE_OVERLAP = 0.2          # Fraction of a split step used for crossfade overlap

# === SAMPLE LAYOUT ===
# Companion files always live here, relative to the preset's directory
SAMPLES_SUBDIR = ('Samples', 'Imported')
SAMPLES_RELATIVE_PREFIX = '/'.join(SAMPLES_SUBDIR)
RELATIVE_PATH_TYPE = 3           # "relative to document" in the host's FileRef
SAMPLE_FILE_TYPE = 2             # FileRef Type for audio files
PRESET_EXTENSION = '.adv'

SUPPORTED_AUDIO_EXTENSIONS = ('.wav', '.aif', '.aiff', '.flac', '.mp3', '.ogg')

# === LOOPS ===
LOOP_MODES = {
    'off': 0,
    'forward': 1,
    'forward_backward': 2,
    'release_off': 3,
}
SUSTAIN_LOOP_DEFAULT_MODE = LOOP_MODES['off']
RELEASE_LOOP_DEFAULT_MODE = LOOP_MODES['release_off']

# === PART DEFAULTS ===
DEFAULT_TUNE_SCALE = 100
DEFAULT_PART_VOLUME = 1.0
DEFAULT_SAMPLE_RATE = 44100.0

# === HOST DOCUMENT ===
ADV_HEADER = {
    'MajorVersion': '5',
    'MinorVersion': '12.0_12120',
    'SchemaChangeCount': '4',
    'Creator': 'Multisampler',
    'Revision': '',
}

# Device defaults (InstrumentSettings)
DEVICE_DEFAULTS = {
    'volume_db': -12.0,
    'panorama': 0.0,
    'num_voices': 32,
    'transpose': 0,
    'detune': 0.0,
    'filter_on': True,
    'filter_type': 0,
    'filter_freq': 22000.0,
    'filter_res': 0.0,
    'load_in_ram': False,
    'layer_crossfade': 0,
    'round_robin_mode': 2,       # 0 = off, 2 = cycle through overlapping zones
    'round_robin_reset_period': 0,
    'round_robin_seed': 1,
}

NUM_VOICES_OPTIONS = (1, 2, 3, 4, 5, 6, 7, 8, 10, 12, 14, 16, 20, 24, 32)


def note_name(midi_note):
    """MIDI number -> note name, e.g. 60 -> 'C3'."""
    return f"{NOTE_NAMES[midi_note % 12]}{midi_note // 12 + OCTAVE_OFFSET}"


def is_white_key(midi_note):
    return (midi_note % 12) not in BLACK_KEY_INDICES
