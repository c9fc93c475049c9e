from typing import List

import pytest

from huffman import MergeTree


def decode_bits(data: bytes, bit_count: int, tree: MergeTree) -> List:
    """
    Reference decoder for the tests: read bits LSB-first and walk the tree
    """
    decoded = []
    handle = tree.root
    for i in range(bit_count):
        bit = (data[i // 8] >> (i % 8)) & 1
        node = tree.node(handle)
        handle = node.right if bit else node.left
        leaf = tree.node(handle)
        if leaf.is_leaf:
            decoded.append(leaf.symbol)
            handle = tree.root
    assert handle == tree.root, "bitstream ended in the middle of a code"
    return decoded


@pytest.fixture
def textbook_table():
    return {"a": 5, "b": 9, "c": 12, "d": 13, "e": 16, "f": 45}


@pytest.fixture
def sample_text():
    return (
        "the quick brown fox jumps over the lazy dog\n"
        "pack my box with five dozen liquor jugs\n"
    ) * 7
