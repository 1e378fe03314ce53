"""Lazy, memoised lump decoding scoped to one opened archive."""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from doomwad.defs import DecodedRaster, MapData, Palette, PcmBuffer
from doomwad.errors import lump_not_found
from doomwad.graphics import decode_flat, decode_patch
from doomwad.mapdata import load_map
from doomwad.perf import perf
from doomwad.sound import decode_sound
from doomwad.wad import WAD, normalize_name, resolve_palette

_log = logging.getLogger("doomwad.cache")


class CellState(enum.Enum):
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class _Cell:
    state: CellState
    value: Any = None


class ResourceCache:
    """
    Name -> decoded artifact, filled on first request.

    A name with no cell has not been attempted yet; otherwise its cell is
    READY (holding the artifact) or FAILED.  Decoding runs outside the lock,
    so two threads may decode the same name at once; the first stored cell
    wins and both callers get that same artifact back.  Failures are logged
    once per name and then answered with None without decoding again.
    """

    def __init__(self, label: str = "resource") -> None:
        self.label = label
        self._cells: dict[str, _Cell] = {}
        self._lock = threading.Lock()

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def get_or_decode(self, name: str, decode: Callable[[], Any]) -> Optional[Any]:
        key = normalize_name(name)
        cell = self._cells.get(key)
        if cell is None:
            cell = self._store(key, self._attempt(key, decode))
        return cell.value if cell.state is CellState.READY else None

    def invalidate(self, name: str) -> None:
        """
        Forget *name* so the next request decodes it again.

        The cache never evicts on its own; this is only for a caller that
        retries against different backing data.
        """
        with self._lock:
            self._cells.pop(normalize_name(name), None)

    def _attempt(self, key: str, decode: Callable[[], Any]) -> _Cell:
        try:
            with perf.timer(f"decode_{self.label}", lump=key):
                value = decode()
        except Exception as e:
            return _Cell(CellState.FAILED, e)
        return _Cell(CellState.READY, value)

    def _store(self, key: str, cell: _Cell) -> _Cell:
        with self._lock:
            existing = self._cells.get(key)
            if existing is not None:
                return existing
            self._cells[key] = cell
        if cell.state is CellState.FAILED:
            _log.warning("failed to decode %s %r: %s", self.label, key, cell.value)
        return cell


class Resources:
    """Per-archive access to palette, patches, flats, sounds and maps."""

    def __init__(self, wad: WAD, fallback_rate: Optional[int] = None) -> None:
        self.wad = wad
        self.fallback_rate = fallback_rate
        self.patches = ResourceCache("patch")
        self.flats = ResourceCache("flat")
        self.sounds = ResourceCache("sound")

    @property
    def palette(self) -> Palette:
        return resolve_palette(self.wad)

    def _lump(self, name: str) -> bytes:
        return self.wad.read_lump_by_name(name)

    def patch(self, name: str) -> Optional[DecodedRaster]:
        return self.patches.get_or_decode(
            name, lambda: decode_patch(self._lump(name), self.palette)
        )

    def flat(self, name: str) -> Optional[DecodedRaster]:
        def decode():
            names = {e.name for e in self.flat_entries()}
            if normalize_name(name) not in names:
                raise lump_not_found(name)
            return decode_flat(self._lump(name), self.palette)

        return self.flats.get_or_decode(name, decode)

    def sound(self, name: str) -> Optional[PcmBuffer]:
        return self.sounds.get_or_decode(
            name, lambda: decode_sound(self._lump(name), self.fallback_rate)
        )

    def flat_entries(self) -> list:
        entries = self.wad.entries_between("F_START", "F_END")
        if not entries:
            # Alternate names used in some PWADs
            entries = self.wad.entries_between("FF_START", "FF_END")
        return entries

    def map(self, name: str) -> MapData:
        return load_map(self.wad, name)
