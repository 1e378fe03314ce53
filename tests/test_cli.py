import struct
import wave

import pytest

from conftest import build_wad, build_patch
from doomwad.__main__ import main


@pytest.fixture
def wad_path(tmp_path, playpal):
    vertexes = struct.pack("<4h", 0, 0, 64, 64)
    lumps = [
        ("PLAYPAL", playpal),
        ("E1M1", b""), ("VERTEXES", vertexes + b"\x00"),
        ("TROOA1", build_patch(1, 1, [[(0, b"\x01")]])),
        ("DSPISTOL", struct.pack("<HHi", 3, 11025, 3) + bytes([128, 0, 255])),
    ]
    path = tmp_path / "test.wad"
    path.write_bytes(build_wad(lumps, ident=b"IWAD"))
    return path


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOOMWAD_DIR", str(tmp_path))


def test_info(wad_path, capsys):
    assert main(["info", str(wad_path)]) == 0
    out = capsys.readouterr().out
    assert "IWAD" in out
    assert "E1M1" in out


def test_lumps_filter(wad_path, capsys):
    assert main(["lumps", str(wad_path), "--filter", "ds"]) == 0
    out = capsys.readouterr().out
    assert "DSPISTOL" in out
    assert "TROOA1" not in out


def test_map_reports_truncation(wad_path, capsys):
    assert main(["map", "E1M1", str(wad_path)]) == 0
    out = capsys.readouterr().out
    assert "vertices" in out
    assert "not a multiple" in out


def test_patch(wad_path, capsys):
    assert main(["patch", "trooa1", str(wad_path)]) == 0
    assert "1x1" in capsys.readouterr().out


def test_missing_patch(wad_path):
    assert main(["patch", "NOPE", str(wad_path)]) == 1


def test_sound_to_wav(wad_path, tmp_path):
    out = tmp_path / "pistol.wav"
    assert main(["sound", "DSPISTOL", str(wad_path), "--wav", str(out)]) == 0
    with wave.open(str(out), "rb") as w:
        assert w.getnframes() == 3


def test_discovers_wad_from_env(wad_path, capsys):
    from doomwad import loader
    loader.clear_cache()
    assert main(["info"]) == 0
    assert "test.wad" in capsys.readouterr().out
    loader.clear_cache()


def test_bad_map_exits_nonzero(wad_path):
    assert main(["map", "E9M9", str(wad_path)]) == 1


def test_perf_summary(wad_path, capsys, monkeypatch):
    from doomwad.perf import perf

    monkeypatch.setattr(perf, "enabled", False)
    perf.reset()
    assert main(["--perf", "patch", "TROOA1", str(wad_path)]) == 0
    assert perf.enabled
    assert "decode_patch" in capsys.readouterr().out
    perf.reset()
