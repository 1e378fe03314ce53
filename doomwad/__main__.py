"""Entry point for `python -m doomwad`.

Usage:
    python -m doomwad info [WAD]
    python -m doomwad lumps [WAD] [--filter DS]
    python -m doomwad map E1M1 [WAD]
    python -m doomwad patch TROOA1 [WAD]
    python -m doomwad sound DSPISTOL [WAD] [--wav out.wav]

Without a WAD path the first IWAD (else PWAD) in $DOOMWAD_DIR is used.
"""
import argparse
import sys

from dotenv import load_dotenv
from rich.markup import escape
from rich.table import Table

from doomwad.cache import Resources
from doomwad.config import console, err_console, configure_logging, load_settings
from doomwad.errors import WadError
from doomwad.loader import get_or_load
from doomwad.perf import perf
from doomwad.wad import WAD


def _open(args, settings) -> WAD:
    if args.wad:
        return WAD.from_file(args.wad)
    return get_or_load(settings.wad_dir)


def cmd_info(res: Resources, args) -> int:
    wad = res.wad
    palette = res.palette
    console.print(f"[bold]{escape(wad.source)}[/]  {wad.ident}, {len(wad)} lumps", soft_wrap=True)
    maps = wad.map_names()
    console.print(f"  maps: {', '.join(maps) if maps else '(none)'}", highlight=False, soft_wrap=True)
    console.print(f"  palette: {'grayscale fallback' if palette.fallback else 'PLAYPAL'}")
    console.print(f"  flats: {len(res.flat_entries())}")
    return 0


def cmd_lumps(res: Resources, args) -> int:
    table = Table(title=res.wad.source)
    table.add_column("#", justify="right")
    table.add_column("name")
    table.add_column("offset", justify="right")
    table.add_column("size", justify="right")
    needle = (args.filter or "").upper()
    for e in res.wad.directory:
        if needle and needle not in e.name:
            continue
        style = None if res.wad.is_readable(e) else "red"
        table.add_row(str(e.index), e.name, str(e.offset), str(e.size), style=style)
    console.print(table)
    return 0


def cmd_map(res: Resources, args) -> int:
    md = res.map(args.name)
    table = Table(title=md.name)
    table.add_column("table")
    table.add_column("records", justify="right")
    for attr in ("vertices", "linedefs", "sidedefs", "sectors", "things",
                 "segs", "subsectors", "nodes"):
        table.add_row(attr, str(len(getattr(md, attr))))
    console.print(table)
    for err in md.errors:
        console.print(f"  [yellow]{escape(err.message)}[/]", highlight=False)
    return 0


def cmd_patch(res: Resources, args) -> int:
    raster = res.patch(args.name)
    if raster is None:
        err_console.print(f"[red]Cannot decode patch {args.name!r}[/]")
        return 1
    console.print(
        f"{args.name.upper()}: {raster.width}x{raster.height} "
        f"offset ({raster.left_offset}, {raster.top_offset}), "
        f"{raster.opaque_count()} opaque pixels",
        highlight=False,
    )
    return 0


def cmd_sound(res: Resources, args) -> int:
    pcm = res.sound(args.name)
    if pcm is None:
        err_console.print(f"[red]Cannot decode sound {args.name!r}[/]")
        return 1
    console.print(
        f"{args.name.upper()}: {pcm.sample_rate} Hz, {pcm.sample_count} samples "
        f"({pcm.sample_count / pcm.sample_rate:.2f}s)",
        highlight=False,
    )
    if args.wav:
        with open(args.wav, "wb") as f:
            f.write(pcm.to_wav())
        console.print(f"  wrote {args.wav}")
    return 0


def parse_args(argv=None):
    p = argparse.ArgumentParser(prog="doomwad", description="Inspect WAD archives")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("--perf", action="store_true", help="Print decode timings")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("info", help="Archive summary")
    s.add_argument("wad", nargs="?")
    s.set_defaults(func=cmd_info)

    s = sub.add_parser("lumps", help="List the lump directory")
    s.add_argument("wad", nargs="?")
    s.add_argument("--filter", help="Only names containing this text")
    s.set_defaults(func=cmd_lumps)

    for name, func, helptext in (
        ("map", cmd_map, "Decode a map's tables"),
        ("patch", cmd_patch, "Decode a patch/sprite"),
        ("sound", cmd_sound, "Decode a digitised sound"),
    ):
        s = sub.add_parser(name, help=helptext)
        s.add_argument("name")
        s.add_argument("wad", nargs="?")
        if name == "sound":
            s.add_argument("--wav", help="Write the decoded sound as a WAV file")
        s.set_defaults(func=func)

    return p.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv()
    settings = load_settings()
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else settings.log_level)
    perf.enabled = args.perf

    try:
        res = Resources(_open(args, settings), fallback_rate=settings.sample_rate)
        status = args.func(res, args)
    except (WadError, FileNotFoundError) as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}", highlight=False)
        return 1

    if args.perf:
        perf.summary(console)
    return status


if __name__ == "__main__":
    sys.exit(main())
