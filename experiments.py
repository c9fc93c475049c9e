"""
Benchmark: partitioned (multi-threaded) Huffman encoding vs single stream

Runs repeated experiments over synthetic datasets and worker counts

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --degrees 1,2,4,8,16 --exp3_max_mb 4
  python experiments.py --outdir results --runs 5 --exp1_generators uniform256,zipf128,english_like

Notes:
  "stream" counts with one worker and packs one continuous bitstream.
  "partitioned" counts and packs with --degree workers; every partition is
  byte-aligned on its own, so padding_bits grows with the degree.
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import time
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Callable

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

import bitpack
from frequency import DEFAULT_DEGREE, count_frequencies
from huffman import build_code_table, build_tree, weighted_length

VARIANTS = ("stream", "partitioned")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]


# Synthetic dataset generators

def _sample_cdf(rng: random.Random, weights: List[float], size: int) -> List[int]:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)

    picks = []
    for _ in range(size):
        r = rng.random()
        lo, hi = 0, len(cdf) - 1
        while lo < hi:
            mid = (lo + hi) // 2
            if r <= cdf[mid]:
                hi = mid
            else:
                lo = mid + 1
        picks.append(lo)
    return picks

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    return bytes(random.Random(seed).choices(range(alphabet), k=size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    # the rest of the mass is spread evenly over the other 255 byte values
    weights = [dom_frac if b == dominant else (1.0 - dom_frac) / 255 for b in range(256)]
    return bytes(_sample_cdf(random.Random(seed), weights, size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    weights = [1.0 / ((i + 1) ** s) for i in range(alphabet)]
    return bytes(_sample_cdf(rng, weights, size))

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return bytes(ord(chars[i]) for i in _sample_cdf(rng, weights, size))

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """
    Unknown dataset names fall back to uniform256 so one typo does not
    abort a long run; the row name records the fallback
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    variant: str  # "stream" or "partitioned"
    degree: int
    unique_symbols: int

    count_ms: float
    build_tree_ms: float
    encode_ms: float
    total_ms: float

    compressed_bytes: int
    payload_bits: int
    padding_bits: int
    compression_ratio: float
    bits_ok: int  # 1 if payload bits match sum(freq * code length)


def run_one(data: bytes, variant: str, degree: int = DEFAULT_DEGREE) -> MetricRow:
    if variant not in VARIANTS:
        raise ValueError(f"variant must be one of {VARIANTS}")
    workers = 1 if variant == "stream" else degree

    # count
    t0 = now_ns()
    ft = count_frequencies(data, workers)
    t1 = now_ns()

    # tree + code table
    tree = build_tree(ft)
    code_map = build_code_table(tree)
    t2 = now_ns()

    # encode
    if variant == "stream":
        packed = bitpack.encode_stream(data, code_map)
        payload_bits = weighted_length(ft, code_map)
    else:
        parts = bitpack.encode_partitions(data, code_map, degree)
        packed = b"".join(p.data for p in parts)
        payload_bits = sum(p.bit_count for p in parts)
    t3 = now_ns()

    comp_bytes = len(packed)
    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        variant=variant,
        degree=workers,
        unique_symbols=len(ft),
        count_ms=ns_to_ms(t1 - t0),
        build_tree_ms=ns_to_ms(t2 - t1),
        encode_ms=ns_to_ms(t3 - t2),
        total_ms=ns_to_ms(t3 - t0),
        compressed_bytes=comp_bytes,
        payload_bits=payload_bits,
        padding_bits=comp_bytes * 8 - payload_bits,
        compression_ratio=comp_bytes / max(1, len(data)),
        bits_ok=1 if payload_bits == weighted_length(ft, code_map) else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=[fl.name for fl in fields(MetricRow)])
        w.writeheader()
        w.writerows(asdict(r) for r in rows)


def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    # stdev needs two samples; a single run reports zero spread
    spread = statistics.stdev(vals) if len(vals) > 1 else 0.0
    return statistics.mean(vals), spread


SUMMARY_METRICS = ("compression_ratio", "count_ms", "build_tree_ms", "encode_ms", "total_ms", "padding_bits")

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, variant, degree and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str, int], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes, r.variant, r.degree)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "variant", "degree", "n_runs"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("bits_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b, variant, degree = key
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "variant": variant,
                "degree": degree,
                "n_runs": len(items),
                "bits_ok_rate": sum(x.bits_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                row[f"{m}_mean"], row[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(row)


# Plotting

def _save(outdir: Path, name: str) -> None:
    plt.tight_layout()
    plt.savefig(outdir / name, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, variant: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.variant == variant]
        return statistics.mean(vals) if vals else float("nan")

    for field, ylabel, name in (
        ("compression_ratio", "Compressed Bytes / Original Bytes", "exp1_compression_ratio.png"),
        ("encode_ms", "Encode Time (ms)", "exp1_encode_time.png"),
        ("total_ms", "Total Time (ms) (count + build + encode)", "exp1_total_time.png"),
    ):
        plt.figure()
        for v in VARIANTS:
            plt.plot(x, [mean_for(d, v, field) for d in datasets], marker="o", label=v)
        plt.xticks(x, datasets, rotation=20, ha="right")
        plt.ylabel(ylabel)
        plt.title(f"Experiment 1: {ylabel.split(' (')[0]} by Distribution")
        plt.legend()
        _save(outdir, name)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_degree_scaling"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    degrees = sorted(set(r.degree for r in exp_rows if r.variant == "partitioned"))

    def mean_deg(dataset: str, degree: int, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows
                if r.dataset_name == dataset and r.variant == "partitioned" and r.degree == degree]
        return statistics.mean(vals) if vals else float("nan")

    for field, ylabel, name in (
        ("count_ms", "Count Time (ms)", "exp2_count_time.png"),
        ("encode_ms", "Encode Time (ms)", "exp2_encode_time.png"),
        ("padding_bits", "Padding Bits", "exp2_padding_bits.png"),
    ):
        plt.figure()
        for d in datasets:
            plt.plot(degrees, [mean_deg(d, k, field) for k in degrees], marker="o", label=d)
        plt.xlabel("Worker Threads (degree)")
        plt.ylabel(ylabel)
        plt.title(f"Experiment 2: {ylabel} vs Degree")
        plt.legend()
        _save(outdir, name)


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, variant: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size and r.variant == variant]
            return statistics.mean(vals) if vals else float("nan")

        plt.figure()
        for v in VARIANTS:
            plt.plot(sizes, [mean_size(s, v, "total_ms") for s in sizes], marker="o", label=v)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Total Time (ms) (count + build + encode)")
        plt.title(f"Experiment 3: Total Runtime vs Size ({dist})")
        plt.legend()
        _save(outdir, f"exp3_total_time_{dist}.png")


# Main

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--degree", type=int, default=DEFAULT_DEGREE, help="Worker threads for the partitioned variant")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (degree scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (size scaling)")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=512, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_size_kb", type=int, default=1024, help="Experiment 2 fixed file size in KB")
    ap.add_argument("--degrees", type=str, default="1,2,4,8", help="Comma-separated worker counts for experiment 2")
    ap.add_argument("--exp2_generators", type=str, default="zipf128,english_like",
                    help="Comma-separated dataset generator names for experiment 2")

    # Experiment 3 controls
    ap.add_argument("--exp3_min_kb", type=int, default=4, help="Experiment 3 min size in KB (power-of-two growth)")
    ap.add_argument("--exp3_max_mb", type=int, default=8, help="Experiment 3 max size in MB (power-of-two growth)")
    ap.add_argument("--exp3_generators", type=str, default="uniform256,zipf128,repetitive90",
                    help="Comma-separated dataset generator names for experiment 3")

    args = ap.parse_args(argv)
    if args.degree < 1:
        ap.error("--degree must be at least 1")
    degrees = [int(k) for k in parse_csv_list(args.degrees)]
    if any(k < 1 for k in degrees):
        ap.error("--degrees entries must be at least 1")

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    def record(exp_name: str, dataset_name: str, run_id: int, data: bytes, variant: str, degree: int) -> None:
        row = run_one(data, variant, degree)
        row.exp_name = exp_name
        row.dataset_name = dataset_name
        row.run_id = run_id
        rows.append(row)

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                for variant in VARIANTS:
                    record("exp1_distribution", dataset_name, run_id, data, variant, args.degree)

    # Experiment 2: degree scaling (fixed size, partitioned only)
    if not args.no_exp2:
        fixed_size = max(1, args.exp2_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp2_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + 10_000 + run_id)
                for k in degrees:
                    record("exp2_degree_scaling", dataset_name, run_id, data, "partitioned", k)

    # Experiment 3: size scaling (multiple sizes, powers of 2)
    if not args.no_exp3:
        min_bytes = max(1, args.exp3_min_kb) * 1024
        max_bytes = max(1, args.exp3_max_mb) * 1024 * 1024

        sizes: List[int] = []
        s = min_bytes
        while s <= max_bytes:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp3_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    dataset_name, data = generate_dataset(gen_name, size_b, args.seed + 200_000 + size_b + run_id)
                    for variant in VARIANTS:
                        record("exp3_size_scaling", dataset_name, run_id, data, variant, args.degree)

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    # Plots
    plot_experiment_1(rows, outdir)
    plot_experiment_2(rows, outdir)
    plot_experiment_3(rows, outdir)

    ok_rate = sum(r.bits_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Bit-count check rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
