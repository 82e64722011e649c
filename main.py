# main.py - zero-phase IIR filter CLI
# Design Butterworth / Chebyshev / elliptic filters from Hz parameters, print their
# coefficients, or run a '|' pipeline of them forward-backward over a sound/signal file.

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import soundfile as sf

from filters import (FilterSpec, apply_filter, available_filters as AF_AVAILABLE,
                     build_filter as AF_BUILD, design_filter)
from realizer import DigitalCoefficients

log = logging.getLogger("iirdesign")

# ---------------- Logging ----------------

def setup_logging(verbosity: int = 0) -> None:
    level = [logging.WARNING, logging.INFO, logging.DEBUG][min(verbosity, 2)]
    logging.basicConfig(level=level, format="%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%H:%M:%S")

# ---------------- CLI helpers ----------------

def _coerce(v: str) -> Any:
    """'4' -> 4, '0.5' -> 0.5, 'true' -> True, '45,55' -> (45, 55); anything else stays a string."""
    if "," in v:
        return tuple(_coerce(part.strip()) for part in v.split(",") if part.strip())
    if v.lower() in ("true", "false"):
        return v.lower() == "true"
    for cast in (int, float):
        try:
            return cast(v)
        except ValueError:
            pass
    return v

def _parse_kv_pairs(pairs: Optional[List[str]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for p in pairs or ():
        key, sep, value = p.partition("=")
        if not sep or not key.strip():
            log.warning("Ignoring extra '%s' (expected key=val)", p)
            continue
        out[key.strip()] = _coerce(value.strip())
    return out

def _parse_stages(pipeline: Optional[str], single: Optional[str]) -> List[str]:
    """Filter names from '--pipeline a|b' or '--filter a'; unknown names abort the CLI."""
    if pipeline:
        stages = [s.strip().lower() for s in pipeline.split("|") if s.strip()]
        if not stages:
            raise ValueError("Empty --pipeline. Example: highpass|bandstop")
    elif single:
        stages = [single.strip().lower()]
    else:
        raise ValueError("Provide --pipeline 'f1|f2|...' or --filter NAME.")
    unknown = [s for s in stages if s not in AF_AVAILABLE()]
    if unknown:
        raise SystemExit(f"Unknown filter(s) in pipeline: {', '.join(unknown)}")
    return stages

def _split_stage_extras(stages: List[str], raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Params per stage. Plain and all.key apply to every stage, name.key to every
    stage of that filter, idx.key (0-based) to one stage; narrower scopes win."""
    scoped: List[Tuple[int, str, str, Any]] = []
    for k, v in raw.items():
        prefix, _, key = k.rpartition(".")
        prefix = prefix.strip().lower()
        if prefix in ("", "all"):
            scoped.append((0, "", key.strip(), v))
        elif prefix.isdigit():
            if int(prefix) >= len(stages):
                log.warning("Ignoring '%s': pipeline has only %d stage(s)", k, len(stages))
            scoped.append((2, str(int(prefix)), key.strip(), v))
        else:
            if prefix not in stages:
                log.warning("Ignoring '%s': no '%s' stage in pipeline", k, prefix)
            scoped.append((1, prefix, key.strip(), v))
    scoped.sort(key=lambda item: item[0])

    out: List[Dict[str, Any]] = []
    for i, name in enumerate(stages):
        targets = ("", name, str(i))
        out.append({key: v for rank, prefix, key, v in scoped if prefix == targets[rank]})
    return out

def _resolve_stages(args: argparse.Namespace) -> Tuple[List[str], List[Dict[str, Any]]]:
    stages = _parse_stages(args.pipeline, args.filter)
    return stages, _split_stage_extras(stages, _parse_kv_pairs(args.extra))

def _design_stages(stages: List[str], stage_extras: List[Dict[str, Any]], sr: float) -> List[DigitalCoefficients]:
    out: List[DigitalCoefficients] = []
    for i, name in enumerate(stages):
        spec: FilterSpec = AF_BUILD(name, sr, **stage_extras[i])
        coeffs = design_filter(spec)
        log.info("Stage %d %s: %s %s n=%d Wn=%s", i, name, spec.method.value, spec.band.value,
                 spec.order, ", ".join(f"{c:.6g}" for c in spec.cutoffs))
        out.append(coeffs)
    return out

# ---------------- Edge handling ----------------

def _odd_extend(x: np.ndarray, n: int) -> np.ndarray:
    """Point-reflect `n` samples about each end (axis 0) to soak up start-up transients."""
    n = min(n, x.shape[0] - 1)
    if n <= 0:
        return x
    left = 2.0 * x[0] - x[n:0:-1]
    right = 2.0 * x[-1] - x[-2:-n - 2:-1]
    return np.concatenate([left, x, right], axis=0)

def _filter_all(x: np.ndarray, designs: List[DigitalCoefficients], pad: int) -> np.ndarray:
    y = _odd_extend(x, pad)
    added = (y.shape[0] - x.shape[0]) // 2
    for coeffs in designs:
        y = apply_filter(coeffs, y)
    return y[added:added + x.shape[0]] if added else y

# ---------------- Commands ----------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Zero-phase IIR filter design and application")
    p.add_argument("-v", "--verbose", action="count", default=0)
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("list", help="List filters").set_defaults(func=cmd_list)

    # ---- design ----
    dp = sub.add_parser("design", help="Print b/a coefficients for one filter")
    dp.add_argument("--filter", required=True, choices=list(AF_AVAILABLE().keys()))
    dp.add_argument("--samplerate", type=float, required=True, help="Sampling frequency (Hz)")
    dp.add_argument("--extra", nargs="*", help="Filter params as key=val, e.g. cutoff=50 order=4")
    dp.add_argument("--json", action="store_true", help="Print coefficients as JSON")
    dp.set_defaults(func=cmd_design)

    # ---- run ----
    rp = sub.add_parser("run", help="Zero-phase filter a file through one or more filters")
    rp.add_argument("--input", type=Path, required=True, help="Input file (anything libsndfile reads)")
    rp.add_argument("--out", type=Path, required=True, help="Output file path")
    rp.add_argument("--pipeline", help="Pipe filters as 'f1|f2|f3'")
    rp.add_argument("--filter", choices=list(AF_AVAILABLE().keys()), help="Single filter")
    rp.add_argument("--extra", nargs="*", help="Extra args like key=val, all.key=val, <name>.key=val, <idx>.key=val")
    rp.add_argument("--start", type=float, default=0.0, help="Start time (sec)")
    rp.add_argument("--duration", type=float, help="Duration (sec)")
    rp.add_argument("--pad", type=int, default=0, help="Samples of odd reflection added at each end before filtering")
    rp.add_argument("--subtype", help="Output subtype, e.g. PCM_16, FLOAT (default: format default)")
    rp.set_defaults(func=cmd_run)

    # ---- bench ----
    bp = sub.add_parser("bench", help="Micro-benchmark design + apply of a pipeline")
    bp.add_argument("--input", type=Path, required=True)
    bp.add_argument("--pipeline", help="Pipe filters as 'f1|f2|f3'")
    bp.add_argument("--filter", choices=list(AF_AVAILABLE().keys()))
    bp.add_argument("--extra", nargs="*")
    bp.add_argument("--runs", type=int, default=5)
    bp.set_defaults(func=cmd_bench)

    return p

def cmd_list(_args: argparse.Namespace) -> int:
    print("Available filters:")
    for name, help_text in AF_AVAILABLE().items():
        print(f"  - {name:10s} : {help_text}")
    return 0

def cmd_design(args: argparse.Namespace) -> int:
    try:
        params = _parse_kv_pairs(args.extra)
        coeffs = _design_stages([args.filter], [params], args.samplerate)[0]
    except Exception as e:
        log.exception("Failed: %s", e)
        return 1
    if args.json:
        print(json.dumps(coeffs.as_dict()))
    else:
        with np.printoptions(precision=12, linewidth=120):
            print(f"b = {coeffs.b}")
            print(f"a = {coeffs.a}")
    return 0

def cmd_run(args: argparse.Namespace) -> int:
    try:
        stages, stage_extras = _resolve_stages(args)

        with sf.SoundFile(str(args.input), mode="r") as f_in:
            sr = f_in.samplerate
            if args.start and args.start > 0:
                f_in.seek(int(args.start * sr))
            frames = -1 if args.duration is None else int(args.duration * sr)
            x = f_in.read(frames, dtype="float64", always_2d=True)
        log.info("Read %d frame(s) x %d channel(s) @ %d Hz from %s", x.shape[0], x.shape[1], sr, args.input)

        designs = _design_stages(stages, stage_extras, sr)
        y = _filter_all(x, designs, args.pad)

        args.out.parent.mkdir(parents=True, exist_ok=True)
        sf.write(str(args.out), y, sr, subtype=args.subtype)
        log.info("Saved %s", args.out)
        return 0
    except Exception as e:
        log.exception("Failed: %s", e)
        return 1

def cmd_bench(args: argparse.Namespace) -> int:
    try:
        stages, stage_extras = _resolve_stages(args)

        x, sr = sf.read(str(args.input), dtype="float64", always_2d=True)

        times: List[float] = []
        for _ in range(max(1, args.runs)):
            t0 = time.perf_counter()
            designs = _design_stages(stages, stage_extras, sr)
            _filter_all(x, designs, 0)
            times.append(time.perf_counter() - t0)
        avg = sum(times) / len(times)
        print(f"{'|'.join(stages)}: {len(times)} run(s) - avg {avg*1000:.2f} ms, min {min(times)*1000:.2f} ms, max {max(times)*1000:.2f} ms")
        return 0
    except Exception as e:
        log.exception("Bench failed: %s", e)
        return 1

# ---------------- Entry ----------------

def build_and_run(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return args.func(args)

if __name__ == "__main__":  # pragma: no cover
    sys.exit(build_and_run())
