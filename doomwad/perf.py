"""Structured decode-timing logger.

Usage:
    from doomwad.perf import perf

    with perf.timer("decode_patch", lump="TROOA1"):
        raster = decode_patch(data, palette)

    perf.enabled = True  # events are dropped until enabled
    perf.summary()       # pretty-print to terminal
    perf.save()          # writes runs/YYYYMMDD_HHMMSS.jsonl
"""

import json
import os
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.table import Table


@dataclass
class PerfEvent:
    timestamp: float
    operation: str
    duration_ms: float
    success: bool = True
    error: str | None = None
    meta: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        d = {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 3),
            "success": self.success,
        }
        if self.error:
            d["error"] = self.error
        d.update(self.meta)
        return d


class PerfLogger:
    """Collects timing events only while enabled; disabled by default."""

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._t0: float = time.time()
        self._events: list[PerfEvent] = []
        self._lock = threading.Lock()

    def event(self, operation: str, duration_ms: float, success: bool = True,
              error: str | None = None, **meta):
        """Record a single timed event."""
        if not self.enabled:
            return
        ev = PerfEvent(
            timestamp=time.time(),
            operation=operation,
            duration_ms=duration_ms,
            success=success,
            error=error,
            meta=meta,
        )
        with self._lock:
            self._events.append(ev)

    @contextmanager
    def timer(self, operation: str, **meta):
        """Context manager that times a block and records the event."""
        t = time.perf_counter()
        err = None
        ok = True
        try:
            yield
        except Exception as e:
            err = f"{type(e).__name__}: {e}"
            ok = False
            raise
        finally:
            dur = (time.perf_counter() - t) * 1000
            self.event(operation, dur, success=ok, error=err, **meta)

    def reset(self):
        with self._lock:
            self._events.clear()
            self._t0 = time.time()

    def summary(self, console: Console | None = None):
        """Print per-operation latency statistics as a table."""
        console = console or Console()

        ops: dict[str, list[float]] = {}
        for ev in self.events:
            ops.setdefault(ev.operation, []).append(ev.duration_ms)

        table = Table(title="Decode timings (ms)")
        for col in ("operation", "count", "min", "median", "p95", "max", "total"):
            table.add_column(col, justify="left" if col == "operation" else "right")

        for op, durations in sorted(ops.items()):
            durations.sort()
            n = len(durations)
            table.add_row(
                op, str(n),
                f"{durations[0]:.2f}", f"{durations[n // 2]:.2f}",
                f"{durations[int(n * 0.95)]:.2f}", f"{durations[-1]:.2f}",
                f"{sum(durations):.1f}",
            )
        console.print(table)

        errors = [ev for ev in self.events if not ev.success]
        if errors:
            console.print(f"  Errors: {len(errors)}", style="red")
            for ev in errors[:5]:
                console.print(f"    {ev.operation}: {ev.error}", style="dim", highlight=False)

    def save(self, directory: str = "runs") -> str:
        """Write all events as JSONL. Returns the file path."""
        Path(directory).mkdir(exist_ok=True)
        ts = time.strftime("%Y%m%d_%H%M%S", time.localtime(self._t0))
        path = os.path.join(directory, f"{ts}.jsonl")
        with open(path, "w") as f:
            for ev in self.events:
                f.write(json.dumps(ev.to_dict()) + "\n")
        return path

    @property
    def events(self) -> list[PerfEvent]:
        with self._lock:
            return list(self._events)


# Module-level singleton
perf = PerfLogger()
