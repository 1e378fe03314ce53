"""
Digitised sound (DMX) decoder.

Sound lump layout:
    H   format marker (3 for digitised sounds)
    H   sample rate
    I   sample count
    B   samples[]  unsigned 8-bit, 128 = silence
"""

import struct
from array import array
from typing import Optional

from doomwad.defs import PcmBuffer, DEFAULT_SAMPLE_RATE
from doomwad.errors import invalid_format

_SOUND_HEADER_FMT = "<HHi"
_SOUND_HEADER_SIZE = struct.calcsize(_SOUND_HEADER_FMT)  # 8

# unsigned byte -> signed sample, centred on 0
_REBIAS = bytes((b - 128) & 0xFF for b in range(256))


def decode_sound(data: bytes, fallback_rate: Optional[int] = None) -> PcmBuffer:
    """
    Decode a DMX sound lump into signed 8-bit mono PCM.

    A sample rate of 0 is replaced by *fallback_rate* (11025 Hz by
    default).  A sample count that is not positive or runs past the end of
    the lump is clamped to the bytes actually present.
    """
    if len(data) < _SOUND_HEADER_SIZE:
        raise invalid_format("Sound lump is shorter than its header", size=len(data))

    _format, sample_rate, sample_count = struct.unpack_from(_SOUND_HEADER_FMT, data, 0)
    if sample_rate == 0:
        sample_rate = fallback_rate or DEFAULT_SAMPLE_RATE

    available = len(data) - _SOUND_HEADER_SIZE
    if sample_count <= 0 or sample_count > available:
        sample_count = available

    raw = data[_SOUND_HEADER_SIZE: _SOUND_HEADER_SIZE + sample_count]
    samples = array("b", raw.translate(_REBIAS))
    return PcmBuffer(sample_rate=sample_rate, samples=samples)
