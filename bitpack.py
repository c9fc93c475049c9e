from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from frequency import DEFAULT_DEGREE, run_partitioned
from huffman import CodeTable, check_encodable


@dataclass(frozen=True)
class PackedBits:
    data: bytes
    bit_count: int # payload bits, excluding trailing padding
    skipped: int = 0 # symbols with no entry in the code table

    @property
    def padding_bits(self) -> int:
        return len(self.data) * 8 - self.bit_count


def pack_bits(symbols: Sequence, code_map: CodeTable) -> PackedBits: # symbols: one contiguous run, code_map: symbol -> code
    """
    Converts Huffman codes into packed bytes, least significant bit first.

    The first bit of the run lands in bit 0 of the first byte. A trailing
    partial byte is flushed with its unused high bits left at zero.
    Symbols missing from the code table are skipped and counted.
    """
    out = bytearray()
    acc = 0
    acc_bits = 0
    total_bits = 0
    skipped = 0

    for symbol in symbols:
        bits = code_map.get(symbol)
        if bits is None:
            skipped += 1
            continue
        for ch in bits:
            if ch == '1':
                acc |= 1 << acc_bits
            acc_bits += 1
            if acc_bits == 8:
                out.append(acc)
                acc = 0
                acc_bits = 0
        total_bits += len(bits)

    if acc_bits != 0:
        out.append(acc)

    return PackedBits(bytes(out), total_bits, skipped)


def encode_partitions(symbols: Sequence, code_map: CodeTable,
                      degree: int = DEFAULT_DEGREE) -> List[PackedBits]:
    """Pack every partition on its own worker; results are in partition order."""
    check_encodable(code_map)
    return run_partitioned("encode", symbols, degree, lambda part: pack_bits(part, code_map))


def encode(symbols: Sequence, code_map: CodeTable, degree: int = DEFAULT_DEGREE) -> bytes:
    """
    Concurrent encoder: partition, pack each partition, then join in order.

    Partitions match the ones used for counting. Each partition is padded
    to a whole byte on its own before the join, so a partition that does
    not end on a byte boundary leaves padding bits in the middle of the
    output. Use encode_stream for one gap-free bitstream.
    """
    return b"".join(p.data for p in encode_partitions(symbols, code_map, degree))


def pack_stream(symbols: Sequence, code_map: CodeTable) -> PackedBits:
    """Single-threaded encoder: one continuous bitstream, padded only at the end."""
    check_encodable(code_map)
    return pack_bits(symbols, code_map)


def encode_stream(symbols: Sequence, code_map: CodeTable) -> bytes:
    return pack_stream(symbols, code_map).data
