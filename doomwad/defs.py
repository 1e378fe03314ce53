"""Shared constants and data structures for doomwad."""
import io
import wave
from array import array
from dataclasses import dataclass, field
from typing import Optional

# Lump directory layout
HEADER_SIZE = 12
DIR_ENTRY_SIZE = 16

# Palette
PALETTE_COLORS = 256
PALETTE_BYTES = PALETTE_COLORS * 3
COLORMAP_COUNT = 34

# Flats are raw 64x64 indexed blocks
FLAT_SIZE = 64

# Sample rate used when a sound header declares 0 Hz
DEFAULT_SAMPLE_RATE = 11025

# LineDef flags
ML_BLOCKING = 1
ML_BLOCKMONSTERS = 2
ML_TWOSIDED = 4
ML_DONTPEGTOP = 8
ML_DONTPEGBOTTOM = 16
ML_SECRET = 32
ML_SOUNDBLOCK = 64
ML_DONTDRAW = 128
ML_MAPPED = 256

# Sidedef index meaning "no side"
NO_SIDE = -1

# BSP node child indicator
NF_SUBSECTOR = 0x8000


# ─── Archive ───

@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    offset: int
    size: int
    index: int  # position within the directory

    @property
    def end(self) -> int:
        return self.offset + self.size


# ─── Map data structures ───
# All cross references are plain integer indices into the MapData tables.

@dataclass
class Vertex:
    x: int
    y: int

@dataclass
class LineDef:
    start_vertex: int
    end_vertex: int
    flags: int = 0
    special: int = 0
    tag: int = 0
    front_sidedef: int = NO_SIDE
    back_sidedef: int = NO_SIDE

    @property
    def two_sided(self) -> bool:
        return self.back_sidedef != NO_SIDE

@dataclass
class SideDef:
    x_offset: int
    y_offset: int
    upper_texture: str = "-"
    lower_texture: str = "-"
    middle_texture: str = "-"
    sector: int = -1

@dataclass
class Sector:
    floor_height: int
    ceiling_height: int
    floor_texture: str
    ceiling_texture: str
    light_level: int
    special: int
    tag: int

@dataclass
class Thing:
    x: int
    y: int
    angle: int
    type: int
    flags: int

@dataclass
class Seg:
    start_vertex: int
    end_vertex: int
    angle: int  # BAM >> 16, unsigned
    linedef: int
    side: int  # 0 = front, 1 = back
    offset: int

@dataclass
class Subsector:
    num_segs: int
    first_seg: int

@dataclass
class Node:
    x: int
    y: int
    dx: int
    dy: int
    # [[top, bottom, left, right], [top, bottom, left, right]]
    bbox: list = field(default_factory=lambda: [[0] * 4, [0] * 4])
    children: list = field(default_factory=lambda: [0, 0])

@dataclass
class MapData:
    """Holds all decoded tables of one map."""
    name: str = ""
    vertices: list = field(default_factory=list)
    linedefs: list = field(default_factory=list)
    sidedefs: list = field(default_factory=list)
    sectors: list = field(default_factory=list)
    things: list = field(default_factory=list)
    segs: list = field(default_factory=list)
    subsectors: list = field(default_factory=list)
    nodes: list = field(default_factory=list)
    reject: Optional[bytes] = None
    blockmap: Optional[bytes] = None
    # TruncatedTable errors collected while decoding
    errors: list = field(default_factory=list)

    @staticmethod
    def _at(table: list, index: int):
        if 0 <= index < len(table):
            return table[index]
        return None

    def vertex(self, index: int) -> Optional[Vertex]:
        return self._at(self.vertices, index)

    def linedef(self, index: int) -> Optional[LineDef]:
        return self._at(self.linedefs, index)

    def sidedef(self, index: int) -> Optional[SideDef]:
        return self._at(self.sidedefs, index)

    def sector(self, index: int) -> Optional[Sector]:
        return self._at(self.sectors, index)


# ─── Graphics ───

@dataclass(frozen=True)
class Palette:
    """256 opaque RGBA colours indexed by the bytes found in patches."""
    colors: tuple
    fallback: bool = False

    def __getitem__(self, index: int) -> tuple:
        return self.colors[index]

    def __len__(self) -> int:
        return len(self.colors)

@dataclass
class DecodedRaster:
    width: int
    height: int
    left_offset: int
    top_offset: int
    # Row-major RGBA, 4 bytes per pixel; untouched pixels stay (0, 0, 0, 0)
    pixels: bytearray

    def pixel(self, x: int, y: int) -> tuple:
        off = (y * self.width + x) * 4
        return tuple(self.pixels[off: off + 4])

    def opaque_count(self) -> int:
        return sum(1 for a in self.pixels[3::4] if a)


# ─── Sound ───

@dataclass
class PcmBuffer:
    sample_rate: int
    samples: array  # typecode "b": signed 8-bit, silence at 0
    channels: int = 1

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    def to_wav(self) -> bytes:
        """
        Wrap the samples in an in-memory RIFF/WAVE container.

        8-bit WAV data is unsigned, so samples are shifted back by +128.
        """
        buf = io.BytesIO()
        with wave.open(buf, "wb") as w:
            w.setnchannels(self.channels)
            w.setsampwidth(1)
            w.setframerate(self.sample_rate)
            w.writeframes(bytes((s + 128) & 0xFF for s in self.samples))
        return buf.getvalue()
