"""
WAD archive reader plus palette and colormap loaders.

WAD header layout (12 bytes):
    4s  identification  "IWAD" or "PWAD"
    i   numlumps
    i   infotableofs

Lump directory entry (16 bytes each):
    i   filepos
    i   size
    8s  name  (null-padded, case-insensitive)
"""

import logging
import re
import struct
import threading
from pathlib import Path
from typing import Optional, Union

from doomwad.defs import (
    DirectoryEntry, Palette,
    HEADER_SIZE, DIR_ENTRY_SIZE, PALETTE_COLORS, PALETTE_BYTES, COLORMAP_COUNT,
)
from doomwad.errors import invalid_header, out_of_range, lump_not_found

_log = logging.getLogger("doomwad.wad")

VALID_IDENTS = (b"IWAD", b"PWAD")

MAP_MARKER_RE = re.compile(r"^(MAP\d\d|E\dM\d)$")


def decode_name(raw: bytes) -> str:
    """Convert a null-padded 8-byte WAD name to an uppercase string."""
    return raw.split(b"\x00", 1)[0].rstrip().decode("ascii", errors="replace").upper()


def normalize_name(name: str) -> str:
    return name.split("\x00", 1)[0].strip().upper()


def is_marker_name(name: str) -> bool:
    """True for names that open or close a run of related lumps."""
    name = normalize_name(name)
    return bool(MAP_MARKER_RE.match(name)) or name.endswith(("_START", "_END"))


# ---------------------------------------------------------------------------
# WAD file reader
# ---------------------------------------------------------------------------

class WAD:
    """
    An opened WAD archive: the raw bytes plus the parsed lump directory.

    Both are immutable after construction, so a WAD can be shared between
    threads without locking.  Duplicate names resolve to the entry that
    comes last in directory order, which is how PWADs override IWAD lumps.
    """

    _HEADER_FMT = "<4sii"
    _DIR_ENTRY_FMT = "<ii8s"

    def __init__(self, data: bytes, source: str = "<memory>") -> None:
        self.source = source
        self._data = bytes(data)

        if len(self._data) < HEADER_SIZE:
            raise invalid_header("Header is too short", size=len(self._data))

        ident, numlumps, infotableofs = struct.unpack_from(
            self._HEADER_FMT, self._data, 0
        )
        if ident not in VALID_IDENTS:
            raise invalid_header(
                f"Not a valid WAD file: identification is {ident!r}"
            )
        if numlumps < 0 or infotableofs < 0 or \
                infotableofs + numlumps * DIR_ENTRY_SIZE > len(self._data):
            raise out_of_range(
                "Lump directory extends past end of archive",
                numlumps=numlumps, infotableofs=infotableofs, size=len(self._data),
            )

        self.ident = ident.decode("ascii")
        self.numlumps = numlumps

        # Parse the lump directory
        directory = []
        offset = infotableofs
        for i in range(numlumps):
            filepos, size, raw_name = struct.unpack_from(
                self._DIR_ENTRY_FMT, self._data, offset
            )
            directory.append(DirectoryEntry(decode_name(raw_name), filepos, size, i))
            offset += DIR_ENTRY_SIZE
        self._directory = tuple(directory)

        # name -> last-occurring entry (later entries override earlier ones)
        self._name_index: dict[str, DirectoryEntry] = {}
        for entry in self._directory:
            self._name_index[entry.name] = entry

        unreadable = [e.name for e in self._directory if not self.is_readable(e)]
        if unreadable:
            _log.warning("%s: %d unreadable lump(s): %s",
                         source, len(unreadable), ", ".join(unreadable[:8]))
        _log.debug("opened %s (%s, %d lumps)", source, self.ident, numlumps)

        self._palette: Optional[Palette] = None
        self._palette_lock = threading.Lock()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "WAD":
        with open(path, "rb") as f:
            data = f.read()
        return cls(data, source=str(path))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def directory(self) -> tuple:
        return self._directory

    @property
    def is_iwad(self) -> bool:
        return self.ident == "IWAD"

    def __len__(self) -> int:
        return len(self._directory)

    def find(self, name: str) -> Optional[DirectoryEntry]:
        """Return the last directory entry named *name*, or None."""
        return self._name_index.get(normalize_name(name))

    def is_readable(self, entry: DirectoryEntry) -> bool:
        return entry.offset >= 0 and entry.size >= 0 and entry.end <= len(self._data)

    def read_lump(self, entry: DirectoryEntry) -> bytes:
        """Return exactly the *size* bytes of *entry*."""
        if not self.is_readable(entry):
            raise out_of_range(
                f"Lump {entry.name!r} lies outside the archive",
                offset=entry.offset, size=entry.size, archive_size=len(self._data),
            )
        return self._data[entry.offset: entry.end]

    def read_lump_by_name(self, name: str) -> bytes:
        entry = self.find(name)
        if entry is None:
            raise lump_not_found(name)
        return self.read_lump(entry)

    def entries_after(self, marker: str) -> list:
        """
        Return the run of entries that follows *marker*, up to (not
        including) the next marker entry or the end of the directory.
        """
        start = self.find(marker)
        if start is None:
            return []
        run = []
        for entry in self._directory[start.index + 1:]:
            if is_marker_name(entry.name):
                break
            run.append(entry)
        return run

    def entries_between(self, start: str, end: str) -> list:
        """
        Return the non-empty entries strictly between the *start* and *end*
        markers.  Zero-size entries (nested sub-markers) are skipped.
        """
        first = self.find(start)
        last = self.find(end)
        if first is None or last is None:
            return []
        return [e for e in self._directory[first.index + 1: last.index] if e.size > 0]

    def map_names(self) -> list:
        return [e.name for e in self._directory if MAP_MARKER_RE.match(e.name)]


# ---------------------------------------------------------------------------
# Palette / colormap loaders
# ---------------------------------------------------------------------------

def grayscale_palette() -> Palette:
    return Palette(tuple((i, i, i, 255) for i in range(PALETTE_COLORS)), fallback=True)


def _decode_palette(wad: WAD) -> Palette:
    entry = wad.find("PLAYPAL")
    data = wad.read_lump(entry) if entry is not None and wad.is_readable(entry) else b""
    if len(data) < PALETTE_BYTES:
        _log.warning("%s: PLAYPAL missing or short (%d bytes), using grayscale palette",
                     wad.source, len(data))
        return grayscale_palette()

    # PLAYPAL holds 14 palettes; only the first is needed.
    colors = []
    for i in range(PALETTE_COLORS):
        r = data[i * 3]
        g = data[i * 3 + 1]
        b = data[i * 3 + 2]
        colors.append((r, g, b, 255))
    return Palette(tuple(colors))


def resolve_palette(wad: WAD) -> Palette:
    """
    Return the first PLAYPAL palette of *wad* as opaque RGBA colours.

    Decoded once per archive.  A missing or short PLAYPAL yields the
    grayscale ramp (i, i, i, 255) instead of an error.
    """
    palette = wad._palette
    if palette is not None:
        return palette
    with wad._palette_lock:
        if wad._palette is None:
            wad._palette = _decode_palette(wad)
        return wad._palette


def load_colormap(wad: WAD) -> list:
    """
    Read the COLORMAP lump and return its 34 light-diminishing tables, each
    256 bytes.  Returns an empty list when the lump is absent or unreadable.
    """
    entry = wad.find("COLORMAP")
    if entry is None or not wad.is_readable(entry):
        return []
    data = wad.read_lump(entry)
    identity = bytes(range(256))
    maps = []
    for i in range(COLORMAP_COUNT):
        start = i * 256
        chunk = data[start: start + 256]
        if not chunk:
            break
        maps.append(chunk + identity[len(chunk):])
    return maps
