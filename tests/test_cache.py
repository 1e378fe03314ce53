import logging
import struct
import threading

from conftest import build_wad, build_patch
from doomwad.cache import ResourceCache, Resources
from doomwad.errors import invalid_format
from doomwad.wad import WAD


def test_decodes_once():
    cache = ResourceCache()
    calls = []

    def decode():
        calls.append(1)
        return object()

    first = cache.get_or_decode("trooa1", decode)
    assert cache.get_or_decode("TROOA1", decode) is first
    assert len(calls) == 1
    assert "TrooA1" in cache


def test_failure_logged_once_and_not_retried(caplog):
    cache = ResourceCache("patch")
    calls = []

    def decode():
        calls.append(1)
        raise invalid_format("broken")

    with caplog.at_level(logging.WARNING, logger="doomwad.cache"):
        for _ in range(5):
            assert cache.get_or_decode("BAD", decode) is None
    assert len(calls) == 1
    assert len([r for r in caplog.records if "BAD" in r.getMessage()]) == 1


def test_each_failing_name_logged(caplog):
    cache = ResourceCache()

    def decode():
        raise invalid_format("broken")

    with caplog.at_level(logging.WARNING, logger="doomwad.cache"):
        cache.get_or_decode("A", decode)
        cache.get_or_decode("B", decode)
        cache.get_or_decode("A", decode)
    assert len(caplog.records) == 2


def test_invalidate_allows_retry():
    cache = ResourceCache()

    def broken():
        raise invalid_format("no")

    assert cache.get_or_decode("X", broken) is None
    cache.invalidate("x")
    assert cache.get_or_decode("X", lambda: 42) == 42


def test_concurrent_requests_converge():
    cache = ResourceCache()
    barrier = threading.Barrier(4)
    results = []

    def decode():
        return [threading.get_ident()]

    def worker():
        barrier.wait()
        results.append(cache.get_or_decode("SHARED", decode))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = cache.get_or_decode("SHARED", decode)
    assert all(r is stored for r in results)
    assert len(cache) == 1


def _resources(playpal):
    patch = build_patch(1, 2, [[(0, b"\x04\x05")]])
    sound = struct.pack("<HHi", 3, 11025, 2) + bytes([128, 129])
    lumps = [
        ("PLAYPAL", playpal),
        ("TROOA1", patch),
        ("BROKEN", b"\x00\x00\x00\x00\x00\x00\x00\x00"),
        ("DSPISTOL", sound),
        ("F_START", b""), ("FLAT1", bytes([4]) * 4096), ("F_END", b""),
    ]
    return Resources(WAD(build_wad(lumps)))


def test_resources_patch(playpal):
    res = _resources(playpal)
    img = res.patch("trooa1")
    assert img.pixel(0, 0) == (4, 251, 2, 255)
    assert res.patch("TROOA1") is img
    assert res.patch("BROKEN") is None
    assert res.patch("MISSING") is None


def test_resources_sound(playpal):
    res = _resources(playpal)
    pcm = res.sound("DSPISTOL")
    assert list(pcm.samples) == [0, 1]
    assert res.sound("dspistol") is pcm


def test_resources_flat(playpal):
    res = _resources(playpal)
    assert [e.name for e in res.flat_entries()] == ["FLAT1"]
    assert res.flat("FLAT1").pixel(0, 0) == (4, 251, 2, 255)
    # a lump outside the flat markers is not a flat
    assert res.flat("TROOA1") is None


def test_resources_palette_and_map(playpal):
    res = _resources(playpal)
    assert res.palette[1] == (1, 254, 0, 255)
    assert res.palette is res.palette


def test_unexpected_exception_is_absent_and_logged_once(caplog):
    cache = ResourceCache("sound")
    calls = []

    def decode():
        calls.append(1)
        raise ValueError("corrupt payload")

    with caplog.at_level(logging.WARNING, logger="doomwad.cache"):
        results = [cache.get_or_decode("X", decode) for _ in range(3)]
    assert results == [None, None, None]
    assert len(calls) == 1
    assert len(caplog.records) == 1
    assert "corrupt payload" in caplog.records[0].getMessage()


def test_timings_recorded_only_when_enabled(monkeypatch):
    from doomwad.perf import perf

    monkeypatch.setattr(perf, "enabled", False)
    perf.reset()
    ResourceCache("patch").get_or_decode("A", lambda: 1)
    assert perf.events == []

    monkeypatch.setattr(perf, "enabled", True)
    ResourceCache("patch").get_or_decode("B", lambda: 2)
    assert [(ev.operation, ev.meta["lump"]) for ev in perf.events] == [("decode_patch", "B")]
    perf.reset()
