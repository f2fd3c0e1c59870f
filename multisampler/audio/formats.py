"""
Audio container recognition.

The mapping core never opens audio files; it only needs to know whether a
path names a container the host can load. Metadata (rate, frames, size,
mtime) arrives already resolved on a SampleFileRef.
"""

from pathlib import PurePath

from multisampler.config import SUPPORTED_AUDIO_EXTENSIONS


def audio_extension(path) -> str:
    """Lower-cased extension of path, including the dot ('' if none)."""
    return PurePath(str(path)).suffix.lower()


def is_supported_audio(path) -> bool:
    """True if path names a recognised audio container."""
    return audio_extension(path) in SUPPORTED_AUDIO_EXTENSIONS
