#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Extended Collatz — Parallel cycle classifier (u64 → u128 → bigint widening)
===========================================================================
- **Generalized map**: n → a·n, round up to a multiple of p^e, strip *all* factors of p
- **Magnitude** values widen narrow(64) → wide(128) → unbounded and demote back on division
- **Floyd** two-pointer cycle detection + rotation to the minimum member (canonical form)
- **CycleRegistry**: insert-if-absent under a short lock, extraction happens outside it
- **Automatic runtime mode**: multiprocessing → thread → single (outer pool over multipliers)
- **Single-writer** reports: workers only compute, the main process writes the CSV files
- **Fail-slow I/O**: a failed report does not stop other multipliers; exit 1 at the end
- **Fail-fast defects**: an engine invariant violation stops every worker, exit 70

ENV
  COLL_RUN_MODE         (auto|mp|thread|single) default: auto
  COLL_NUM_WORKERS      (default: os.cpu_count()) outer pool over multipliers
  COLL_SWEEP_THREADS    (default: 1) threads per multiplier sweep
  COLL_PROGRESS_EVERY   (default: 0 → off) per-thread progress ping interval
  COLL_OUT_DIR          (default: .) root for tables/ and cycles_<p>/

CLI
  python3 extended_collatz.py -n 1000 -s 3 -e 15 --write-cycle
  python3 extended_collatz.py -n "2^20" -s 5 -e 5 -p 3 --write-table --write-cycle
  python3 extended_collatz.py -n 100 -s 3 -e 3 --all-starts --write-table   # keep starts divisible by p
  python3 extended_collatz.py --test          # run self-tests
  LICENSE: MIT
  DATE: 2026-10-19

"""
from __future__ import annotations
import os, sys, time, math, csv, argparse, re, enum
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

# --- Unbounded cycle members must always render as decimal text ---
if hasattr(sys, "set_int_max_str_digits"):
    sys.set_int_max_str_digits(0)

# --- Logger ---
def log_print(*args):
    print(*args)
    sys.stdout.flush()

# --- MP/Thread probes ---
try:
    import multiprocessing as _mp
except ImportError:
    _mp = None
import threading as _th
import queue as _qu

def _probe_mp_available() -> bool:
    if _mp is None:
        return False
    try:
        import _multiprocessing  # type: ignore  # noqa: F401
        q = _mp.Queue(maxsize=1); e = _mp.Event()
        q.put_nowait(None); _ = q.get_nowait()
        return not e.is_set()
    except (ImportError, OSError, _qu.Empty, _qu.Full):
        return False

def _probe_threads_available() -> bool:
    try:
        t = _th.Thread(target=lambda: None)
        t.start(); t.join()
        return True
    except RuntimeError:
        return False

# --- ENV helpers ---
def env_int(name: str, default: int) -> int:
    try: return int(os.environ.get(name, default))
    except ValueError: return default

def env_str(name: str, default: str) -> str:
    v = os.environ.get(name); return v if isinstance(v, str) and v else default

# Big integer parser ("10**6", "2^20", hex, underscores)
def parse_bigint(s: str) -> int:
    s = (s or "").strip().lower().replace("_", "")
    if not s:
        raise ValueError("empty integer literal")
    if s.startswith("0x"):
        return int(s, 16)
    m = re.fullmatch(r"(\d+)\s*(?:\*\*|\^)\s*(\d+)", s)
    if m:
        a, b = int(m.group(1)), int(m.group(2))
        return pow(a, b)
    return int(s)

RUN_MODE_PREF  = env_str("COLL_RUN_MODE", "auto").lower()
NUM_WORKERS    = env_int("COLL_NUM_WORKERS", (os.cpu_count() or 2))
SWEEP_THREADS  = env_int("COLL_SWEEP_THREADS", 1)
PROGRESS_EVERY = env_int("COLL_PROGRESS_EVERY", 0)
OUT_DIR        = env_str("COLL_OUT_DIR", ".")

EXIT_REPORT_FAILED = 1
EXIT_DEFECT = 70

# --- Errors ---

class CollatzError(Exception):
    """Base class for errors raised by the extended Collatz engine."""

class InvariantViolation(CollatzError):
    """The numeric engine produced an impossible state; the run cannot continue."""

class ReportError(CollatzError):
    """Writing one multiplier's report failed."""

    def __init__(self, a: int, path: Path, message: str):
        super().__init__(f"a={a}: {message} ({path})")
        self.a = a
        self.path = path

# --- Magnitude (narrow 64 → wide 128 → unbounded) ---

class Width(enum.Enum):
    NARROW = "u64"
    WIDE = "u128"
    BIG = "bigint"

_WIDTH_ORDER = (Width.NARROW, Width.WIDE, Width.BIG)
_WIDTH_LIMIT = {Width.NARROW: 1 << 64, Width.WIDE: 1 << 128, Width.BIG: None}
SMALL_LIMIT = _WIDTH_LIMIT[Width.NARROW]

def _fit(value: int) -> Width:
    """Narrowest width that holds ``value``."""
    for w in _WIDTH_ORDER:
        limit = _WIDTH_LIMIT[w]
        if limit is None or value < limit:
            return w
    raise InvariantViolation(f"no width holds {value}")

def _small(k: int, what: str = "operand") -> int:
    if isinstance(k, bool) or not isinstance(k, int):
        raise TypeError(f"{what} must be an int, got {type(k).__name__}")
    if not 1 <= k < SMALL_LIMIT:
        raise ValueError(f"{what} must be in [1, 2**64), got {k}")
    return k


class Magnitude:
    """Immutable unsigned integer tagged with the width that stores it.

    Equality, ordering and hashing use the numeric value only, so a u64 5
    equals a u128 5. Every operation returns its result in the narrowest width
    that holds it, widening past 64 or 128 bits only when the value needs it.
    """

    __slots__ = ("_value", "_width")

    def __init__(self, value: int, width: Optional[Width] = None):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Magnitude needs an int, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"Magnitude is unsigned, got {value}")
        narrowest = _fit(value)
        if width is None:
            width = narrowest
        elif _WIDTH_ORDER.index(width) < _WIDTH_ORDER.index(narrowest):
            raise ValueError(f"{value} does not fit {width.value}")
        object.__setattr__(self, "_value", value)
        object.__setattr__(self, "_width", width)

    def __setattr__(self, name, value):
        raise AttributeError("Magnitude is immutable")

    def __reduce__(self):
        return (Magnitude, (self._value, self._width))

    @property
    def width(self) -> Width:
        return self._width

    @property
    def value(self) -> int:
        return self._value

    def multiply_by_small(self, k: int) -> "Magnitude":
        v = self._value * _small(k, "multiplier")
        return Magnitude(v)

    def round_up_to_multiple(self, m: int) -> "Magnitude":
        r = self._value % _small(m, "modulus")
        if r == 0:
            return self if self._width is _fit(self._value) else Magnitude(self._value)
        v = self._value + (m - r)
        return Magnitude(v)

    def is_divisible_by(self, k: int) -> bool:
        return self._value % _small(k, "divisor") == 0

    def divide_by_small(self, k: int) -> "Magnitude":
        q, r = divmod(self._value, _small(k, "divisor"))
        if r:
            raise InvariantViolation(f"{self._value} is not divisible by {k}")
        return Magnitude(q)

    def compare(self, other: "Magnitude") -> int:
        return (self._value > other._value) - (self._value < other._value)

    def __eq__(self, other):
        if not isinstance(other, Magnitude):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other):
        if not isinstance(other, Magnitude):
            return NotImplemented
        return self._value < other._value

    def __le__(self, other):
        if not isinstance(other, Magnitude):
            return NotImplemented
        return self._value <= other._value

    def __gt__(self, other):
        if not isinstance(other, Magnitude):
            return NotImplemented
        return self._value > other._value

    def __ge__(self, other):
        if not isinstance(other, Magnitude):
            return NotImplemented
        return self._value >= other._value

    def __hash__(self):
        return hash(self._value)

    def __int__(self):
        return self._value

    def __str__(self):
        return str(self._value)

    def __repr__(self):
        return f"Magnitude({self._value}, {self._width.value})"

Cycle = Tuple[Magnitude, ...]

# --- Exponent selector + step ---

def get_exponent(a: int, p: int) -> int:
    """Smallest e >= 1 with ln(a) <= (e - 1 + p/(p-1)) * ln(p)."""
    if p < 2:
        raise ValueError(f"modulus base must be >= 2, got {p}")
    if a < 1:
        raise ValueError(f"multiplier must be >= 1, got {a}")
    e = 1
    a_float = float(a); p_float = float(p)
    while math.log(a_float) - (e - 1.0 + p_float / (p_float - 1.0)) * math.log(p_float) > 0.0:
        e += 1
    return e

def modulus_power(p: int, e: int) -> int:
    pe = p ** e
    if pe >= SMALL_LIMIT:
        raise ValueError(f"p^e = {p}^{e} does not fit 64 bits")
    return pe

def step(n: Magnitude, a: int, p: int, e: int, pe: Optional[int] = None) -> Magnitude:
    """One transition: multiply by a, round up to a multiple of p^e, strip every factor p."""
    if n.value == 0:
        raise ValueError("0 is a fixed point of the multiply/strip rule")
    if pe is None:
        pe = modulus_power(p, e)
    n = n.multiply_by_small(a)
    n = n.round_up_to_multiple(pe)
    while n.is_divisible_by(p):
        n = n.divide_by_small(p)
    return n

def reference_step(n: int, a: int, p: int, e: int) -> int:
    # plain int path, no width bookkeeping
    n *= a
    r = n % (p ** e)
    if r:
        n += p ** e - r
    while n % p == 0:
        n //= p
    return n

# --- Floyd detection + canonical rotation ---

def floyd_meet(n0: Magnitude, a: int, p: int, e: int, pe: Optional[int] = None) -> Magnitude:
    if pe is None:
        pe = modulus_power(p, e)
    slow = fast = n0
    while True:
        slow = step(slow, a, p, e, pe)
        fast = step(step(fast, a, p, e, pe), a, p, e, pe)
        if slow == fast:
            return slow

def extract_cycle(m: Magnitude, a: int, p: int, e: int, pe: Optional[int] = None) -> List[Magnitude]:
    """Members visited from ``m`` until the orbit returns to ``m``."""
    if pe is None:
        pe = modulus_power(p, e)
    cycle = []
    x = m
    while True:
        cycle.append(x)
        x = step(x, a, p, e, pe)
        if x == m:
            break
    return cycle

def canonicalize(cycle: Sequence[Magnitude]) -> Cycle:
    if not cycle:
        raise InvariantViolation("extracted cycle is empty")
    if len(set(cycle)) != len(cycle):
        raise InvariantViolation(f"cycle has repeated members: {[str(x) for x in cycle]}")
    i = min(range(len(cycle)), key=lambda j: cycle[j])
    return tuple(cycle[i:]) + tuple(cycle[:i])

def find_cycle(n0: Magnitude, a: int, p: int, e: int) -> Cycle:
    pe = modulus_power(p, e)
    m = floyd_meet(n0, a, p, e, pe)
    return canonicalize(extract_cycle(m, a, p, e, pe))

# --- Cycle registry ---

class CycleRegistry:
    """Canonical cycles keyed by their minimum member; entries are never replaced."""

    def __init__(self):
        self._cycles: Dict[Magnitude, Cycle] = {}
        self._lock = _th.Lock()

    def get_or_insert(self, key: Magnitude, compute_cycle: Callable[[], Sequence[Magnitude]]) -> Cycle:
        with self._lock:
            found = self._cycles.get(key)
        if found is not None:
            return found
        # computed outside the lock; a losing writer's cycle is dropped
        cycle = tuple(compute_cycle())
        if not cycle or cycle[0] != key:
            raise InvariantViolation(f"cycle for key {key} does not start with it")
        with self._lock:
            return self._cycles.setdefault(key, cycle)

    def get(self, key: Magnitude) -> Optional[Cycle]:
        with self._lock:
            return self._cycles.get(key)

    def __contains__(self, key):
        with self._lock:
            return key in self._cycles

    def __len__(self):
        with self._lock:
            return len(self._cycles)

    def sorted_items(self) -> List[Tuple[Magnitude, Cycle]]:
        with self._lock:
            return sorted(self._cycles.items(), key=lambda kv: kv[0])

def classify_start(n0: int, a: int, p: int, e: int, registry: CycleRegistry) -> Magnitude:
    """Cycle identity (canonical minimum) reached from starting value ``n0``."""
    if n0 < 1:
        raise ValueError(f"starting value must be >= 1, got {n0}")
    cycle = find_cycle(Magnitude(n0), a, p, e)
    key = cycle[0]
    registry.get_or_insert(key, lambda: cycle)
    return key

# --- Sweep config + result ---

@dataclass
class SweepConfig:
    n: int
    a_start: int
    a_end: int
    p: int = 2
    write_table: bool = False
    write_cycle: bool = False
    skip_multiples: bool = True
    workers: int = 1
    threads: int = 1
    run_mode: str = "single"
    out_dir: Path = field(default_factory=lambda: Path("."))

    def validate(self) -> "SweepConfig":
        if not 2 <= self.p < SMALL_LIMIT:
            raise ValueError(f"p must be in [2, 2**64), got {self.p}")
        if not 1 <= self.n < SMALL_LIMIT:
            raise ValueError(f"n must be in [1, 2**64), got {self.n}")
        if self.a_start < 1 or self.a_end < self.a_start:
            raise ValueError(f"bad multiplier range {self.a_start}..{self.a_end}")
        if self.a_end >= SMALL_LIMIT:
            raise ValueError(f"multiplier {self.a_end} does not fit 64 bits")
        # e never shrinks as a grows, so the largest multiplier bounds p^e
        modulus_power(self.p, get_exponent(self.a_end, self.p))
        if self.workers < 1 or self.threads < 1:
            raise ValueError("workers and threads must be >= 1")
        return self

    def multipliers(self) -> List[int]:
        return [a for a in range(self.a_start, self.a_end + 1) if a % self.p != 0]

    def starts(self) -> List[int]:
        if self.skip_multiples:
            return [x for x in range(1, self.n + 1) if x % self.p != 0]
        return list(range(1, self.n + 1))


@dataclass
class SweepResult:
    """Everything one multiplier's sweep hands to the report writers."""

    a: int
    p: int
    e: int
    starts: List[int]
    cycle_mins: List[Magnitude]
    cycles: Dict[Magnitude, Cycle]

    def table_rows(self) -> List[Tuple[int, Magnitude]]:
        return list(zip(self.starts, self.cycle_mins))

    def cycle_counts(self) -> Dict[Magnitude, int]:
        counts = Counter(self.cycle_mins)
        return {k: counts.get(k, 0) for k in sorted(self.cycles)}

# --- Sweep (one multiplier, thread pool over starting values) ---

def sweep_multiplier(a: int, cfg: SweepConfig, stop=None) -> Optional[SweepResult]:
    """Classify every considered start under multiplier ``a``.

    Thread ``r`` of ``W`` owns slots r, r+W, ... of the result list. Returns
    None when ``stop`` was set by someone else before the sweep finished.
    """
    stop = stop if stop is not None else _th.Event()
    e = get_exponent(a, cfg.p)
    modulus_power(cfg.p, e)  # raises if p^e does not fit 64 bits
    starts = cfg.starts()
    slots: List[Optional[Magnitude]] = [None] * len(starts)
    registry = CycleRegistry()
    failures: List[BaseException] = []
    W = max(1, min(cfg.threads, len(starts)))

    def work(residue: int):
        done = 0
        for i in range(residue, len(starts), W):
            if stop.is_set():
                return
            try:
                slots[i] = classify_start(starts[i], a, cfg.p, e, registry)
            except InvariantViolation as exc:
                failures.append(exc)
                stop.set()
                return
            done += 1
            if PROGRESS_EVERY > 0 and done % PROGRESS_EVERY == 0:
                log_print(f"[a={a} t={residue}/{W}] classified={done}")

    if W == 1:
        work(0)
    else:
        threads = [_th.Thread(target=work, args=(r,), daemon=True) for r in range(W)]
        for t in threads: t.start()
        for t in threads: t.join()

    if failures:
        raise failures[0]
    if any(s is None for s in slots):
        return None

    result = SweepResult(a=a, p=cfg.p, e=e, starts=starts, cycle_mins=slots,
                         cycles=dict(registry.sorted_items()))
    log_print(f"[a={a}] e={e} starts={len(starts)} cycles={len(result.cycles)}")
    return result

# --- Runtime mode selector & compat classes ---

def resolve_runtime_mode(pref: str) -> str:
    pref = (pref or "auto").lower()
    if pref == "single":
        return "single"
    if pref == "thread":
        return "thread" if _probe_threads_available() else "single"
    if pref == "mp":
        if _probe_mp_available():
            return "mp"
        return "thread" if _probe_threads_available() else "single"
    # auto
    if _probe_mp_available():
        return "mp"
    if _probe_threads_available():
        return "thread"
    return "single"

class CompatQueue:
    def __init__(self, use_mp: bool, maxsize: int = 0):
        self._q = (_mp.Queue(maxsize=maxsize) if use_mp else _qu.Queue(maxsize=maxsize))
    def put(self, item):
        return self._q.put(item)
    def get(self, timeout: Optional[float] = None):
        if timeout is None:
            return self._q.get()
        return self._q.get(timeout=timeout)

class CompatEvent:
    def __init__(self, use_mp: bool):
        self._e = (_mp.Event() if use_mp else _th.Event())
    def set(self):
        return self._e.set()
    def is_set(self) -> bool:
        return self._e.is_set()

class CompatProcess:
    def __init__(self, use_mp: bool, target, args=(), daemon: bool = True):
        self._p = (_mp.Process(target=target, args=args, daemon=daemon) if use_mp
                   else _th.Thread(target=target, args=args, daemon=daemon))
    def start(self):
        self._p.start()
    def join(self):
        self._p.join()
    def is_alive(self) -> bool:
        return self._p.is_alive()

# --- Worker (outer pool over multipliers) ---

def worker_proc(tasks, results, stop, cfg: SweepConfig):
    while not stop.is_set():
        a = tasks.get()
        if a is None:
            return
        try:
            res = sweep_multiplier(a, cfg, stop)
        except InvariantViolation as exc:
            results.put({"kind": "fatal", "a": a, "message": str(exc)})
            stop.set(); return
        except Exception as exc:
            results.put({"kind": "error", "a": a, "etype": type(exc).__name__, "message": str(exc)})
            stop.set(); return
        if res is None:
            return
        results.put({"kind": "sweep", "result": res})

def iter_sweeps(cfg: SweepConfig) -> Iterator[SweepResult]:
    """Yield one SweepResult per multiplier, in completion order."""
    multipliers = cfg.multipliers()
    if not multipliers:
        return
    mode = resolve_runtime_mode(cfg.run_mode)
    W = min(cfg.workers, len(multipliers))
    if mode == "single" or W == 1:
        for a in multipliers:
            yield sweep_multiplier(a, cfg)
        return

    use_mp = (mode == "mp")
    tasks = CompatQueue(use_mp=use_mp)
    results = CompatQueue(use_mp=use_mp)
    stop = CompatEvent(use_mp=use_mp)
    for a in multipliers:
        tasks.put(a)
    for _ in range(W):
        tasks.put(None)

    procs = [CompatProcess(use_mp=use_mp, target=worker_proc, args=(tasks, results, stop, cfg))
             for _ in range(W)]
    for p in procs:
        p.start()

    try:
        received = 0
        while received < len(multipliers):
            try:
                item = results.get(timeout=1.0)
            except _qu.Empty:
                if not any(p.is_alive() for p in procs):
                    raise InvariantViolation(
                        f"workers exited with {len(multipliers) - received} multipliers unfinished")
                continue
            if item["kind"] == "fatal":
                stop.set()
                raise InvariantViolation(f"a={item['a']}: {item['message']}")
            if item["kind"] == "error":
                stop.set()
                if item["etype"] == "ValueError":
                    raise ValueError(f"a={item['a']}: {item['message']}")
                raise CollatzError(f"a={item['a']}: {item['etype']}: {item['message']}")
            received += 1
            yield item["result"]
    finally:
        stop.set()
        # drain so mp children can flush their queue and exit
        for p in procs:
            while p.is_alive():
                try:
                    results.get(timeout=0.1)
                except _qu.Empty:
                    continue
            p.join()

# --- Reports (single writer) ---

def write_table(result: SweepResult, out_dir: Path) -> Path:
    path = Path(out_dir) / "tables" / f"collatz{result.a}.csv"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="") as fh:
            wtr = csv.writer(fh)
            wtr.writerow(["n", "cycle"])
            for start, key in result.table_rows():
                wtr.writerow([start, str(key)])
    except (OSError, csv.Error) as exc:
        raise ReportError(result.a, path, f"failed to write table: {exc}") from exc
    log_print(f"Table written to {path}")
    return path

def write_cycle(result: SweepResult, out_dir: Path) -> Path:
    path = Path(out_dir) / f"cycles_{result.p}" / f"cycle{result.a}.csv"
    counts = result.cycle_counts()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="") as fh:
            wtr = csv.writer(fh)
            wtr.writerow(["min", "count", "length", "cycle"])
            for key in sorted(result.cycles):
                members = result.cycles[key]
                wtr.writerow([str(key), counts.get(key, 0), len(members),
                              " -> ".join(str(x) for x in members)])
    except (OSError, csv.Error) as exc:
        raise ReportError(result.a, path, f"failed to write cycles: {exc}") from exc
    log_print(f"Cycle written to {path}")
    return path

def write_reports(result: SweepResult, cfg: SweepConfig) -> List[Path]:
    written = []
    if cfg.write_table and len(result.cycles) > 1:
        written.append(write_table(result, cfg.out_dir))
    if cfg.write_cycle:
        written.append(write_cycle(result, cfg.out_dir))
    return written

def run(cfg: SweepConfig) -> List[ReportError]:
    """Sweep every multiplier and write its reports; I/O failures are collected, not raised."""
    cfg.validate()
    failures: List[ReportError] = []
    for result in iter_sweeps(cfg):
        try:
            write_reports(result, cfg)
        except ReportError as exc:
            log_print(f"[writer] {exc}")
            failures.append(exc)
    return failures

# --- Elapsed time ---

def print_elapsed_time(start: float):
    millis = int((time.time() - start) * 1000)
    seconds = millis // 1000
    hour, minute, second = seconds // 3600, (seconds % 3600) // 60, seconds % 60
    log_print(f"Elapsed time: {hour:02}:{minute:02}:{second:02}.{millis % 1000:03}")

# --- Alert format ---

def format_alert(message: str) -> str:
    lines = [
        "",
        "⚠️ ALERT: ENGINE INVARIANT VIOLATED",
        f"  {message}",
        "  results of this run are not trustworthy; aborting",
        "",
    ]
    return "\n".join(lines)

# --- Self tests ---

def run_tests():
    # step values
    assert step(Magnitude(3), 5, 2, 1) == Magnitude(1)
    assert step(Magnitude(3), 5, 2, 2) == Magnitude(1)
    assert step(Magnitude(3), 7, 2, 2) == Magnitude(3)
    # exponent selector
    assert get_exponent(3, 2) == 1 and get_exponent(5, 2) == 2 and get_exponent(7, 2) == 2
    # widths at the boundaries
    top64 = Magnitude((1 << 64) - 1)
    assert top64.width is Width.NARROW
    assert top64.multiply_by_small(2).width is Width.WIDE
    assert Magnitude((1 << 128) - 1).multiply_by_small(2).width is Width.BIG
    assert Magnitude(1 << 64, Width.BIG).divide_by_small(2).width is Width.NARROW
    assert Magnitude(5, Width.WIDE) == Magnitude(5)
    # int path vs Magnitude path
    for n in [1, 3, 23, 59, (1 << 64) - 1, (1 << 64) + 1, (1 << 128) - 3, (1 << 128) + 7]:
        for a, p in [(3, 2), (5, 2), (7, 3), (11, 5)]:
            e = get_exponent(a, p)
            assert step(Magnitude(n), a, p, e).value == reference_step(n, a, p, e)
    # known 3-cycle under a=5, p=2
    assert find_cycle(Magnitude(23), 5, 2, 2) == (Magnitude(37), Magnitude(47), Magnitude(59))
    # registry
    reg = CycleRegistry()
    assert classify_start(1, 7, 2, 2, reg) == Magnitude(1)
    assert classify_start(3, 7, 2, 2, reg) == Magnitude(3)
    assert classify_start(5, 7, 2, 2, reg) == Magnitude(1) and len(reg) == 2
    # selector
    assert resolve_runtime_mode("single") == "single"
    assert resolve_runtime_mode("thread") in ("thread", "single")
    assert resolve_runtime_mode("mp") in ("mp", "thread", "single")
    assert resolve_runtime_mode("auto") in ("mp", "thread", "single")
    print("All tests passed ✔")

# --- Entrypoint ---

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="extended-collatz",
                                 description="Extended Collatz cycle classifier")
    ap.add_argument("-n", "--n", type=parse_bigint, help="largest starting value")
    ap.add_argument("-s", "--start", dest="a_start", type=int, help="first multiplier")
    ap.add_argument("-e", "--end", dest="a_end", type=int, help="last multiplier")
    ap.add_argument("-p", "--modulus", dest="p", type=int, default=2, help="modulus base (default 2)")
    ap.add_argument("--write-table", action="store_true", help="write tables/collatz<a>.csv")
    ap.add_argument("--write-cycle", action="store_true", help="write cycles_<p>/cycle<a>.csv")
    ap.add_argument("--all-starts", action="store_true", help="also classify starts divisible by p")
    ap.add_argument("--workers", type=int, default=NUM_WORKERS, help="multiplier pool size")
    ap.add_argument("--threads", type=int, default=SWEEP_THREADS, help="threads per multiplier")
    ap.add_argument("--mode", default=RUN_MODE_PREF, choices=("auto", "mp", "thread", "single"))
    ap.add_argument("--out-dir", type=Path, default=Path(OUT_DIR), help="report root directory")
    ap.add_argument("--test", action="store_true", help="run self tests and exit")
    return ap

def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if args.test:
        run_tests()
        return 0
    if args.n is None or args.a_start is None or args.a_end is None:
        ap.error("-n, --start and --end are required")
    if not (args.write_table or args.write_cycle):
        ap.error("one of --write-table or --write-cycle is required")

    cfg = SweepConfig(n=args.n, a_start=args.a_start, a_end=args.a_end, p=args.p,
                      write_table=args.write_table, write_cycle=args.write_cycle,
                      skip_multiples=not args.all_starts, workers=args.workers,
                      threads=args.threads, run_mode=args.mode, out_dir=args.out_dir)
    try:
        cfg.validate()
    except ValueError as exc:
        ap.error(str(exc))

    start = time.time()
    log_print(f"Starting extended Collatz (mode={resolve_runtime_mode(cfg.run_mode)}): "
              f"W={cfg.workers}, T={cfg.threads}, n={cfg.n}, a={cfg.a_start}..{cfg.a_end}, p={cfg.p}")
    try:
        failures = run(cfg)
    except InvariantViolation as exc:
        log_print(format_alert(str(exc)))
        return EXIT_DEFECT

    print_elapsed_time(start)
    if failures:
        failed = ", ".join(f"a={f.a}" for f in sorted(failures, key=lambda f: f.a))
        log_print(f"{len(failures)} report(s) failed: {failed}")
        return EXIT_REPORT_FAILED
    return 0

if __name__ == "__main__":
    sys.exit(main())
