"""
Patch and flat decoders.

Patch lump format (r_defs.h patch_t / column_t / post_t):
    h   width
    h   height
    h   leftoffset
    h   topoffset
    i   columnofs[width]   offsets from start of lump

Each column is a list of posts:
    B   topdelta  (0xFF ends the column)
    B   length
    B   unused pad
    B   pixels[length]
    B   unused pad
"""

import logging
import struct

from doomwad.defs import DecodedRaster, Palette, FLAT_SIZE
from doomwad.errors import invalid_format

_log = logging.getLogger("doomwad.graphics")

_PATCH_HEADER_FMT = "<hhhh"
_PATCH_HEADER_SIZE = struct.calcsize(_PATCH_HEADER_FMT)  # 8

_END_OF_COLUMN = 0xFF


def decode_patch(data: bytes, palette: Palette) -> DecodedRaster:
    """
    Decode a patch lump into an RGBA raster.

    Pixels not covered by any post stay fully transparent.  A column whose
    offset points outside the lump is left empty; rows falling outside the
    image are dropped.
    """
    n = len(data)
    if n < _PATCH_HEADER_SIZE:
        raise invalid_format("Patch lump is shorter than its header", size=n)

    width, height, left_offset, top_offset = struct.unpack_from(_PATCH_HEADER_FMT, data, 0)
    if width <= 0 or height <= 0:
        raise invalid_format("Patch has non-positive dimensions", width=width, height=height)
    if n < _PATCH_HEADER_SIZE + width * 4:
        raise invalid_format("Patch column table does not fit in lump", width=width, size=n)

    pixels = bytearray(width * height * 4)
    col_offsets = struct.unpack_from(f"<{width}i", data, _PATCH_HEADER_SIZE)

    for x, pos in enumerate(col_offsets):
        if pos < 0 or pos >= n:
            _log.debug("column %d offset %d outside lump of %d bytes", x, pos, n)
            continue

        # Walk the posts in this column
        while pos < n:
            topdelta = data[pos]
            pos += 1
            if topdelta == _END_OF_COLUMN:
                break
            if pos + 1 >= n:
                break
            length = data[pos]
            # skip length and pad byte
            pos += 2
            for row in range(length):
                if pos >= n:
                    break
                y = topdelta + row
                if y < height:
                    off = (y * width + x) * 4
                    pixels[off: off + 4] = palette[data[pos]]
                pos += 1
            # skip trailing pad
            pos += 1

    return DecodedRaster(width, height, left_offset, top_offset, pixels)


def decode_flat(data: bytes, palette: Palette) -> DecodedRaster:
    """
    Decode a 64x64 raw palettised flat into an opaque raster.  Short data is
    zero-padded and anything past 4096 bytes is ignored.
    """
    size = FLAT_SIZE * FLAT_SIZE
    raw = data[:size]
    if len(raw) < size:
        raw = raw + b"\x00" * (size - len(raw))

    pixels = bytearray(size * 4)
    for i, index in enumerate(raw):
        pixels[i * 4: i * 4 + 4] = palette[index]
    return DecodedRaster(FLAT_SIZE, FLAT_SIZE, 0, 0, pixels)
