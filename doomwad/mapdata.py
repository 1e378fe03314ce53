"""
Map loader.

A map is a marker lump (e.g. "E1M1" or "MAP01") followed by its data lumps.
The lumps are picked out of the run that follows the marker by name, so
their order and any extra lumps in between do not matter.

Record layouts (doomdata.h, all fields little-endian signed shorts unless
noted):
    THINGS    10  x, y, angle, type, options
    LINEDEFS  14  v1, v2, flags, special, tag, sidenum[2]
    SIDEDEFS  30  textureoffset, rowoffset, top:8s, bottom:8s, mid:8s, sector
    VERTEXES   4  x, y
    SEGS      12  v1, v2, angle, linedef, side, offset
    SSECTORS   4  numsegs:H, firstseg:H
    NODES     28  x, y, dx, dy, bbox[2][4], children[2]:H
    SECTORS   26  floorheight, ceilingheight, floor:8s, ceiling:8s,
                  lightlevel, special, tag
"""

import enum
import logging
import struct
from typing import Callable, Optional

from doomwad.defs import (
    MapData, Vertex, LineDef, SideDef, Sector, Thing, Seg, Subsector, Node,
)
from doomwad.errors import map_not_found, truncated_table, WadError
from doomwad.wad import WAD, decode_name, normalize_name

_log = logging.getLogger("doomwad.mapdata")


class MapLump(enum.Enum):
    THINGS = "THINGS"
    LINEDEFS = "LINEDEFS"
    SIDEDEFS = "SIDEDEFS"
    VERTEXES = "VERTEXES"
    SEGS = "SEGS"
    SSECTORS = "SSECTORS"
    NODES = "NODES"
    SECTORS = "SECTORS"
    REJECT = "REJECT"
    BLOCKMAP = "BLOCKMAP"

    @classmethod
    def classify(cls, name: str) -> Optional["MapLump"]:
        """Return the kind of map lump *name* is, or None for lumps we skip."""
        try:
            return cls(name)
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Record decoders
# ---------------------------------------------------------------------------

def _vertex(raw: bytes, off: int) -> Vertex:
    x, y = struct.unpack_from("<hh", raw, off)
    return Vertex(x=x, y=y)


def _linedef(raw: bytes, off: int) -> LineDef:
    # sidenum[1] of -1 (0xFFFF) means one-sided
    v1, v2, flags, special, tag, front, back = struct.unpack_from("<7h", raw, off)
    return LineDef(
        start_vertex  = v1,
        end_vertex    = v2,
        flags         = flags,
        special       = special,
        tag           = tag,
        front_sidedef = front,
        back_sidedef  = back,
    )


def _sidedef(raw: bytes, off: int) -> SideDef:
    texoff, rowoff = struct.unpack_from("<hh", raw, off)
    sector, = struct.unpack_from("<h", raw, off + 28)
    return SideDef(
        x_offset       = texoff,
        y_offset       = rowoff,
        upper_texture  = decode_name(raw[off + 4: off + 12]),
        lower_texture  = decode_name(raw[off + 12: off + 20]),
        middle_texture = decode_name(raw[off + 20: off + 28]),
        sector         = sector,
    )


def _sector(raw: bytes, off: int) -> Sector:
    floorheight, ceilingheight = struct.unpack_from("<hh", raw, off)
    lightlevel, special, tag = struct.unpack_from("<hhh", raw, off + 20)
    return Sector(
        floor_height    = floorheight,
        ceiling_height  = ceilingheight,
        floor_texture   = decode_name(raw[off + 4: off + 12]),
        ceiling_texture = decode_name(raw[off + 12: off + 20]),
        light_level     = lightlevel,
        special         = special,
        tag             = tag,
    )


def _thing(raw: bytes, off: int) -> Thing:
    x, y, angle, thing_type, options = struct.unpack_from("<hhhhh", raw, off)
    return Thing(x=x, y=y, angle=angle, type=thing_type, flags=options)


def _seg(raw: bytes, off: int) -> Seg:
    v1, v2, angle, linedef, side, offset = struct.unpack_from("<hhHhhh", raw, off)
    return Seg(start_vertex=v1, end_vertex=v2, angle=angle,
               linedef=linedef, side=side, offset=offset)


def _subsector(raw: bytes, off: int) -> Subsector:
    numsegs, firstseg = struct.unpack_from("<HH", raw, off)
    return Subsector(num_segs=numsegs, first_seg=firstseg)


def _node(raw: bytes, off: int) -> Node:
    x, y, dx, dy = struct.unpack_from("<hhhh", raw, off)
    bbox = struct.unpack_from("<8h", raw, off + 8)
    # children with bit 15 set (NF_SUBSECTOR) index subsectors
    c0, c1 = struct.unpack_from("<HH", raw, off + 24)
    return Node(x=x, y=y, dx=dx, dy=dy,
                bbox=[list(bbox[:4]), list(bbox[4:])], children=[c0, c1])


# kind -> (record size, decoder, MapData attribute)
_TABLES: dict = {
    MapLump.VERTEXES: (4, _vertex, "vertices"),
    MapLump.LINEDEFS: (14, _linedef, "linedefs"),
    MapLump.SIDEDEFS: (30, _sidedef, "sidedefs"),
    MapLump.SECTORS:  (26, _sector, "sectors"),
    MapLump.THINGS:   (10, _thing, "things"),
    MapLump.SEGS:     (12, _seg, "segs"),
    MapLump.SSECTORS: (4, _subsector, "subsectors"),
    MapLump.NODES:    (28, _node, "nodes"),
}


def decode_table(raw: bytes, record_size: int, decode: Callable, lump_name: str = "") -> tuple:
    """
    Decode *raw* as a sequence of fixed-size records.

    Returns (records, error).  When the size is not a whole number of
    records, error is a TruncatedTable and records holds every complete
    record before the leftover bytes.
    """
    count, leftover = divmod(len(raw), record_size)
    records = [decode(raw, i * record_size) for i in range(count)]
    error = None
    if leftover:
        error = truncated_table(
            f"{lump_name or 'table'} size {len(raw)} is not a multiple of {record_size}",
            lump=lump_name, size=len(raw), record_size=record_size,
        )
    return records, error


def load_map(wad: WAD, name: str) -> MapData:
    """
    Decode every recognised lump in the run following the map marker *name*.

    Raises MapNotFound when the marker is absent.  Table-level problems
    (truncated or unreadable lumps) are collected on MapData.errors and the
    remaining tables still load.  Indices are kept exactly as stored.
    """
    map_name = normalize_name(name)
    if wad.find(map_name) is None:
        raise map_not_found(map_name)

    md = MapData(name=map_name)

    for entry in wad.entries_after(map_name):
        kind = MapLump.classify(entry.name)
        if kind is None:
            _log.debug("%s: skipping unrecognised lump %s", map_name, entry.name)
            continue

        try:
            raw = wad.read_lump(entry)
        except WadError as e:
            _log.warning("%s: %s", map_name, e)
            md.errors.append(e)
            continue

        if kind is MapLump.REJECT:
            md.reject = raw
        elif kind is MapLump.BLOCKMAP:
            md.blockmap = raw
        else:
            record_size, decode, attr = _TABLES[kind]
            records, error = decode_table(raw, record_size, decode, entry.name)
            setattr(md, attr, records)
            if error is not None:
                _log.warning("%s: %s", map_name, error.message)
                md.errors.append(error)

    return md
