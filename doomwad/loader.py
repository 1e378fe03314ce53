"""Locate WAD files on disk and keep the default archive open."""

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from doomwad.errors import WadError
from doomwad.wad import WAD

_log = logging.getLogger("doomwad.loader")

_cached: Optional[WAD] = None
_cache_lock = threading.Lock()


def list_wad_files(directory: Union[str, Path]) -> list:
    """Return the *.wad files in *directory* (any extension case), sorted."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() == ".wad"
    )


def find_wad(directory: Union[str, Path], requested: Optional[str] = None) -> WAD:
    """
    Open a WAD from *directory*.

    With *requested*, open the file of that name (case-insensitive).
    Otherwise prefer the first IWAD, then the first PWAD.
    """
    candidates = list_wad_files(directory)

    if requested:
        for path in candidates:
            if path.name.lower() == requested.lower():
                return WAD.from_file(path)
        raise FileNotFoundError(f"Requested WAD {requested!r} not found in {directory}")

    pwad = None
    for path in candidates:
        try:
            wad = WAD.from_file(path)
        except WadError as e:
            _log.warning("skipping %s: %s", path, e)
            continue
        if wad.is_iwad:
            return wad
        if pwad is None:
            pwad = wad
    if pwad is not None:
        return pwad
    raise FileNotFoundError(f"No IWAD or PWAD found in {directory}")


def get_or_load(directory: Union[str, Path], requested: Optional[str] = None) -> WAD:
    """Return the process-wide default WAD, opening it on first use.

    Naming a specific file always opens it afresh and leaves the cache alone.
    """
    global _cached
    if requested:
        return find_wad(directory, requested)
    local = _cached
    if local is not None:
        return local
    with _cache_lock:
        if _cached is None:
            _cached = find_wad(directory)
        return _cached


def clear_cache() -> None:
    global _cached
    with _cache_lock:
        _cached = None
