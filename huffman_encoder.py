"""
Command-line Huffman encoder.

Reads a text file, splits it into symbols (characters or space-delimited
words), counts them with a pool of worker threads, builds the merge tree and
code table, and writes two artifacts: the packed bitstream and a plaintext
code table (one symbol line, then one code line, per entry).

How to run:
  python huffman_encoder.py const.txt
  python huffman_encoder.py const.txt --mode words --degree 8 --output const_encoded.bin
  python huffman_encoder.py const.txt --variant stream --code-table codes.txt
"""

from __future__ import annotations

import argparse
import codecs
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import bitpack
from frequency import DEFAULT_DEGREE, count_frequencies
from huffman import CodeTable, HuffmanError, build_code_table, build_tree

MODES = ("chars", "words")
VARIANTS = ("partitioned", "stream")


def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_s(ns: int) -> float:
    return ns / 1_000_000_000.0


def tokenize(text: str, mode: str = "chars") -> List[str]:
    if mode == "chars":
        return list(text)
    if mode == "words":
        # one token per space-separated run on each line; empty tokens dropped
        return [w for line in text.splitlines() for w in line.split(" ") if w]
    raise ValueError(f"mode must be one of {MODES}, got {mode!r}")


def compression_percent(original_bytes: int, encoded_bytes: int) -> float:
    if original_bytes == 0:
        return 0.0
    return 100.0 - (100.0 / original_bytes) * encoded_bytes


def _escape(symbol) -> str:
    return str(symbol).encode("unicode_escape").decode("ascii")

def _unescape(line: str) -> str:
    return line.encode("ascii").decode("unicode_escape")


def write_code_table(path: Path, codes: CodeTable) -> None:
    """Symbols are backslash-escaped so newline or tab symbols stay on one line."""
    with path.open("w", encoding="utf-8", newline="\n") as f:
        for symbol, code in codes.items():
            f.write(_escape(symbol) + "\n")
            f.write(code + "\n")


def read_code_table(path: Path) -> CodeTable:
    lines = path.read_text(encoding="utf-8").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    if len(lines) % 2 != 0:
        raise ValueError(f"{path}: code table has an odd number of lines ({len(lines)})")
    codes: CodeTable = {}
    for i in range(0, len(lines), 2):
        code = lines[i + 1]
        if code.strip("01"):
            raise ValueError(f"{path}:{i + 2}: code {code!r} is not a bit string")
        codes[_unescape(lines[i])] = code
    return codes


def is_known_encoding(name: str) -> bool:
    try:
        codecs.lookup(name)
    except LookupError:
        return False
    return True


def write_artifacts(writers: List[Tuple[Path, Callable[[Path], None]]]) -> None:
    """
    Write every artifact or none of them.

    Each writer fills a `.part` sibling first; the parts are moved into
    place only once all of them exist. If a write or a move fails, the
    parts and any artifact already moved are removed before re-raising.
    """
    staged: List[Path] = []
    placed: List[Path] = []
    try:
        for final, write in writers:
            part = final.with_name(final.name + ".part")
            staged.append(part)
            write(part)
        for (final, _), part in zip(writers, staged):
            part.replace(final)
            placed.append(final)
    except Exception:
        for path in staged + placed:
            if path.is_file():
                path.unlink()
        raise


@dataclass
class EncoderConfig:
    input_path: Path
    output_path: Path
    code_table_path: Optional[Path] = None
    degree: int = DEFAULT_DEGREE
    mode: str = "chars"
    variant: str = "partitioned"
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if self.degree < 1:
            raise ValueError(f"degree must be at least 1, got {self.degree}")
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.variant not in VARIANTS:
            raise ValueError(f"variant must be one of {VARIANTS}, got {self.variant!r}")
        if not is_known_encoding(self.encoding):
            raise ValueError(f"unknown text encoding {self.encoding!r}")


@dataclass
class RunStats:
    input_bytes: int
    symbol_count: int
    unique_symbols: int
    build_s: float
    encode_s: float
    encoded_bytes: int
    payload_bits: int
    skipped_symbols: int

    @property
    def compression_percent(self) -> float:
        return compression_percent(self.input_bytes, self.encoded_bytes)


def run(config: EncoderConfig) -> RunStats:
    """
    Encode one file end to end.

    Both artifacts are written only after counting, tree building and
    encoding have all succeeded; any failure leaves the output paths alone.
    """
    raw = config.input_path.read_bytes()
    symbols = tokenize(raw.decode(config.encoding), config.mode)

    # Build timing covers counting, tree and table
    t0 = now_ns()
    ft = count_frequencies(symbols, config.degree)
    tree = build_tree(ft)
    codes = build_code_table(tree)
    t1 = now_ns()

    # Encode
    t2 = now_ns()
    if config.variant == "partitioned":
        parts = bitpack.encode_partitions(symbols, codes, config.degree)
    else:
        parts = [bitpack.pack_stream(symbols, codes)]
    encoded = b"".join(p.data for p in parts)
    t3 = now_ns()

    writers = [(config.output_path, lambda p: p.write_bytes(encoded))]
    if config.code_table_path is not None:
        writers.append((config.code_table_path, lambda p: write_code_table(p, codes)))
    write_artifacts(writers)

    return RunStats(
        input_bytes=len(raw),
        symbol_count=len(symbols),
        unique_symbols=len(ft),
        build_s=ns_to_s(t1 - t0),
        encode_s=ns_to_s(t3 - t2),
        encoded_bytes=len(encoded),
        payload_bits=sum(p.bit_count for p in parts),
        skipped_symbols=sum(p.skipped for p in parts),
    )


def default_output(input_path: Path, suffix: str) -> Path:
    return input_path.with_name(f"{input_path.stem}_{suffix}{input_path.suffix or '.txt'}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Encode a text file with a Huffman code built by parallel workers")
    ap.add_argument("input", type=Path, help="Text file to encode")
    ap.add_argument("--output", type=Path, default=None, help="Encoded output (default: <input>_encoded)")
    ap.add_argument("--code-table", type=Path, default=None, help="Code table output (default: <input>_codetable)")
    ap.add_argument("--degree", type=int, default=DEFAULT_DEGREE, help="Number of worker threads / partitions")
    ap.add_argument("--mode", choices=MODES, default="chars", help="Symbol domain: characters or space-delimited words")
    ap.add_argument("--variant", choices=VARIANTS, default="partitioned",
                    help="partitioned: parallel encode, byte-aligned partitions; stream: one continuous bitstream")
    ap.add_argument("--encoding", type=str, default="utf-8", help="Text encoding of the input file")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if args.degree < 1:
        ap.error("--degree must be at least 1")
    if not is_known_encoding(args.encoding):
        ap.error(f"--encoding: unknown text encoding {args.encoding!r}")

    config = EncoderConfig(
        input_path=args.input,
        output_path=args.output or default_output(args.input, "encoded"),
        code_table_path=args.code_table or default_output(args.input, "codetable"),
        degree=args.degree,
        mode=args.mode,
        variant=args.variant,
        encoding=args.encoding,
    )

    try:
        stats = run(config)
    except (HuffmanError, OSError, UnicodeDecodeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Time to build tree: {stats.build_s:.6f}sec")
    print(f"Time to encode: {stats.encode_s:.6f}sec")
    print(f"Symbols: {stats.symbol_count} ({stats.unique_symbols} distinct), payload bits: {stats.payload_bits}")
    if stats.skipped_symbols:
        print(f"Skipped {stats.skipped_symbols} symbols with no code")
    print(f"Encoded file is {stats.compression_percent:.2f}% more compressed")
    print("Wrote", config.output_path, "and", config.code_table_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
