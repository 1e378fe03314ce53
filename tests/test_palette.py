import struct
import threading

from conftest import build_wad
from doomwad.wad import WAD, resolve_palette, grayscale_palette, load_colormap


def test_palette_from_playpal(playpal):
    # PLAYPAL carries 14 palettes; only the first matters
    wad = WAD(build_wad([("PLAYPAL", playpal + b"\x00" * 768 * 13)]))
    pal = resolve_palette(wad)
    assert len(pal) == 256
    assert not pal.fallback
    assert pal[0] == (0, 255, 0, 255)
    assert pal[200] == (200, 55, 100, 255)


def test_short_playpal_gives_grayscale():
    wad = WAD(build_wad([("PLAYPAL", b"\x10" * 767)]))
    pal = resolve_palette(wad)
    assert pal.fallback
    assert all(pal[i] == (i, i, i, 255) for i in range(256))


def test_missing_playpal_gives_grayscale():
    wad = WAD(build_wad([("OTHER", b"")]))
    assert resolve_palette(wad) == grayscale_palette()


def test_palette_resolved_once(playpal):
    wad = WAD(build_wad([("PLAYPAL", playpal)]))
    first = resolve_palette(wad)
    assert resolve_palette(wad) is first


def test_concurrent_resolution_agrees(playpal):
    wad = WAD(build_wad([("PLAYPAL", playpal)]))
    results = []
    threads = [threading.Thread(target=lambda: results.append(resolve_palette(wad)))
               for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(results) == 8
    assert all(r == results[0] for r in results)


def test_colormap():
    data = bytes(range(256)) * 33 + bytes([7] * 100)
    wad = WAD(build_wad([("COLORMAP", data)]))
    maps = load_colormap(wad)
    assert len(maps) == 34
    assert all(len(m) == 256 for m in maps)
    # short final table is padded with the identity mapping
    assert maps[33][:100] == bytes([7] * 100)
    assert maps[33][100] == 100


def test_colormap_missing():
    assert load_colormap(WAD(build_wad([]))) == []


def test_colormap_unreadable():
    data = bytearray(build_wad([("COLORMAP", bytes(256))]))
    dir_offset = struct.unpack_from("<i", data, 8)[0]
    struct.pack_into("<i", data, dir_offset + 4, 1_000_000)
    assert load_colormap(WAD(bytes(data))) == []
