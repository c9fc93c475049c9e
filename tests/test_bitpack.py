import pytest

from bitpack import PackedBits, encode, encode_partitions, encode_stream, pack_bits, pack_stream
from conftest import decode_bits
from frequency import count_frequencies
from huffman import (
    DegenerateTreeError,
    PartitionWorkerError,
    build_code_table,
    build_tree,
    weighted_length,
)


def _codes_for(symbols):
    tree = build_tree(count_frequencies(symbols, 1))
    return tree, build_code_table(tree)


def test_pack_bits_is_lsb_first():
    packed = pack_bits("ab", {"a": "1", "b": "0011"})
    # stream 1,0,0,1,1 -> bits 0,3,4 set
    assert packed == PackedBits(bytes([0b00011001]), 5, 0)
    assert packed.padding_bits == 3


def test_pack_bits_spills_into_next_byte():
    packed = pack_bits("aaa", {"a": "101"})
    # 1,0,1,1,0,1,1,0 | 1
    assert packed.data == bytes([0b01101101, 0b00000001])
    assert packed.bit_count == 9


def test_aaab_stream_is_four_bits():
    _, codes = _codes_for("aaab")
    assert all(len(c) == 1 for c in codes.values())

    packed = pack_bits("aaab", codes)
    assert packed.bit_count == 4
    assert encode_stream("aaab", codes) == bytes([0b0111])


def test_aaab_partitioned_pads_each_partition():
    _, codes = _codes_for("aaab")
    assert encode("aaab", codes, 4) == b"\x01\x01\x01\x00"
    assert encode("aaab", codes, 2) == b"\x03\x01"
    assert encode("aaab", codes, 1) == encode_stream("aaab", codes)


def test_partition_bits_sum_to_weighted_length(sample_text):
    table = count_frequencies(sample_text, 4)
    codes = build_code_table(build_tree(table))
    parts = encode_partitions(sample_text, codes, 4)

    assert len(parts) == 4
    assert sum(p.bit_count for p in parts) == weighted_length(table, codes)
    assert all(0 <= p.padding_bits < 8 for p in parts)


@pytest.mark.parametrize("degree", [1, 2, 4, 5, 13])
def test_partitioned_round_trip(sample_text, degree):
    tree, codes = _codes_for(sample_text)

    decoded = []
    for part in encode_partitions(sample_text, codes, degree):
        decoded.extend(decode_bits(part.data, part.bit_count, tree))
    assert "".join(decoded) == sample_text


def test_stream_round_trip_words():
    words = "so much depends upon a red wheel barrow glazed with rain water beside the white chickens".split() * 3
    tree, codes = _codes_for(words)
    packed = pack_bits(words, codes)

    assert decode_bits(encode_stream(words, codes), packed.bit_count, tree) == words


def test_stream_has_no_internal_padding(sample_text):
    _, codes = _codes_for(sample_text)
    stream = encode_stream(sample_text, codes)
    partitioned = encode(sample_text, codes, 4)

    assert len(stream) == (pack_bits(sample_text, codes).bit_count + 7) // 8
    assert len(partitioned) >= len(stream)


def test_unknown_symbols_are_skipped():
    _, codes = _codes_for("aaab")
    packed = pack_bits("aaxb", codes)

    assert packed.skipped == 1
    assert packed.bit_count == 3
    assert packed.data == bytes([0b011])
    assert encode("aaxb", codes, 2) == b"\x03\x00"


def test_single_symbol_encoding_fails_fast():
    _, codes = _codes_for("zzzz")
    assert codes == {"z": ""}

    with pytest.raises(DegenerateTreeError):
        encode("zzzz", codes, 4)
    with pytest.raises(DegenerateTreeError):
        encode_stream("zzzz", codes)


def test_empty_input_encodes_to_nothing():
    assert encode("", {}, 4) == b""
    assert encode_stream([], {}) == b""


def test_encoding_worker_failure_propagates():
    _, codes = _codes_for("aaab")
    with pytest.raises(PartitionWorkerError) as exc_info:
        encode(["a", "a", ["bad"], "b"], codes, 2)
    assert exc_info.value.stage == "encode"
    assert exc_info.value.partition == 1


def test_pack_stream_reports_bits_for_the_stream():
    _, codes = _codes_for("aaab")
    packed = pack_stream("aaxb", codes)

    assert packed == pack_bits("aaxb", codes)
    assert packed.data == encode_stream("aaxb", codes)
    with pytest.raises(DegenerateTreeError):
        pack_stream("zz", {"z": ""})
