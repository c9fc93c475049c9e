import sys

import pytest

from huffman import (
    DegenerateTreeError,
    EmptyInputError,
    HuffmanError,
    MergeTree,
    build_code_table,
    build_tree,
    check_encodable,
    weighted_length,
)


def test_empty_table_raises_empty_input_error():
    with pytest.raises(EmptyInputError):
        build_tree({})


def test_empty_input_error_is_a_huffman_error():
    assert issubclass(EmptyInputError, HuffmanError)
    assert issubclass(DegenerateTreeError, HuffmanError)


def test_merge_tree_needs_nodes():
    with pytest.raises(EmptyInputError):
        MergeTree([])


def test_non_positive_count_rejected():
    with pytest.raises(ValueError):
        build_tree({"a": 3, "b": 0})


def test_textbook_code_lengths(textbook_table):
    tree = build_tree(textbook_table)
    codes = build_code_table(tree)

    lengths = {s: len(c) for s, c in codes.items()}
    assert lengths == {"a": 4, "b": 4, "c": 3, "d": 3, "e": 3, "f": 1}
    assert weighted_length(textbook_table, codes) == 224
    assert tree.weight == 100


def test_textbook_codes_follow_insertion_tie_break(textbook_table):
    codes = build_code_table(build_tree(textbook_table))
    assert codes == {
        "f": "0",
        "c": "100",
        "d": "101",
        "a": "1100",
        "b": "1101",
        "e": "111",
    }


def test_leaf_weights_and_counts(textbook_table):
    tree = build_tree(textbook_table)
    leaves = list(tree.leaves())

    assert len(leaves) == len(textbook_table)
    assert sum(n.weight for n in leaves) == sum(textbook_table.values())
    assert {n.symbol: n.weight for n in leaves} == textbook_table
    # S leaves need exactly S - 1 merges
    assert len(tree) == 2 * len(textbook_table) - 1


def test_internal_weight_is_sum_of_children(textbook_table):
    tree = build_tree(textbook_table)
    for node in tree.nodes:
        if not node.is_leaf:
            assert node.weight == tree.node(node.left).weight + tree.node(node.right).weight


def test_two_symbols_get_one_bit_codes():
    codes = build_code_table(build_tree({"a": 3, "b": 1}))
    assert sorted(codes.values()) == ["0", "1"]
    # lighter node is popped first and becomes the left child
    assert codes == {"b": "0", "a": "1"}


def test_single_symbol_tree_is_a_lone_leaf():
    tree = build_tree({"x": 42})
    assert len(tree) == 1
    assert tree.node(tree.root).is_leaf
    assert tree.depth() == 0
    assert build_code_table(tree) == {"x": ""}


def test_check_encodable_rejects_empty_code():
    with pytest.raises(DegenerateTreeError, match="'x'"):
        check_encodable({"x": ""})
    check_encodable({"a": "0", "b": "1"})


def test_codes_are_prefix_free(sample_text):
    table = {}
    for ch in sample_text:
        table[ch] = table.get(ch, 0) + 1
    codes = list(build_code_table(build_tree(table)).values())

    for i, c1 in enumerate(codes):
        for j, c2 in enumerate(codes):
            if i != j:
                assert not c2.startswith(c1)


def test_rarer_symbols_never_get_shorter_codes():
    table = {"a": 1, "b": 2, "c": 4, "d": 8, "e": 16, "f": 32}
    codes = build_code_table(build_tree(table))
    ordered = sorted(table, key=table.get)
    for rare, common in zip(ordered, ordered[1:]):
        assert len(codes[rare]) >= len(codes[common])


def test_tree_is_reproducible_for_same_table():
    table = {"x": 2, "y": 2, "z": 2, "w": 2, "v": 1}
    assert build_code_table(build_tree(table)) == build_code_table(build_tree(dict(table)))


def test_symbols_can_be_any_hashable():
    table = {("the", 1): 4, 7: 2, None: 1, b"raw": 1}
    codes = build_code_table(build_tree(table))
    assert set(codes) == set(table)
    assert all(codes.values())


def test_skewed_tree_does_not_recurse():
    n = sys.getrecursionlimit() + 200
    # doubling weights merge into a chain as deep as the alphabet
    table = {i: 2 ** i for i in range(n)}
    tree = build_tree(table)
    codes = build_code_table(tree)

    assert tree.depth() == n - 1
    assert len(codes) == n
    assert max(len(c) for c in codes.values()) == n - 1
