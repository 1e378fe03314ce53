"""Decoders for WAD archives: lump directory, maps, patches, flats, palettes and sounds."""

from doomwad.cache import ResourceCache, Resources
from doomwad.defs import (
    DirectoryEntry, Vertex, LineDef, SideDef, Sector, Thing, Seg, Subsector, Node,
    MapData, Palette, DecodedRaster, PcmBuffer,
)
from doomwad.errors import (
    WadError, InvalidHeader, OutOfRange, InvalidFormat, MapNotFound, TruncatedTable,
    LumpNotFound,
)
from doomwad.graphics import decode_patch, decode_flat
from doomwad.mapdata import MapLump, load_map
from doomwad.sound import decode_sound
from doomwad.wad import WAD, resolve_palette, grayscale_palette, load_colormap, is_marker_name

__version__ = "0.1.0"
