import struct

import pytest

from doomwad.defs import Palette


def build_wad(lumps, ident=b"PWAD"):
    """Assemble a WAD image from (name, data) pairs; directory goes last."""
    body = bytearray()
    entries = []
    pos = 12
    for name, data in lumps:
        entries.append((pos, len(data), name))
        body += data
        pos += len(data)
    directory = b"".join(
        struct.pack("<ii8s", off, size, name.encode("ascii")) for off, size, name in entries
    )
    header = struct.pack("<4sii", ident, len(lumps), 12 + len(body))
    return header + bytes(body) + directory


def build_patch(width, height, columns, left=0, top=0):
    """
    Build a patch lump.  *columns* holds, per column, either a list of
    (topdelta, pixel bytes) posts or an int used verbatim as the column
    offset.
    """
    header_size = 8 + width * 4
    body = bytearray()
    offsets = []
    for col in columns:
        if isinstance(col, int):
            offsets.append(col)
            continue
        offsets.append(header_size + len(body))
        for topdelta, pixels in col:
            body += bytes([topdelta, len(pixels), 0]) + pixels + b"\x00"
        body.append(0xFF)
    return (
        struct.pack("<hhhh", width, height, left, top)
        + struct.pack(f"<{width}i", *offsets)
        + bytes(body)
    )


@pytest.fixture
def palette():
    # index i -> (i, 255 - i, i // 2, 255)
    return Palette(tuple((i, 255 - i, i // 2, 255) for i in range(256)))


@pytest.fixture
def playpal():
    return bytes(v for i in range(256) for v in (i, 255 - i, i // 2))
