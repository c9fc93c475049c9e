from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, List, Optional, Tuple

Symbol = Hashable
FrequencyTable = Dict[Symbol, int]
CodeTable = Dict[Symbol, str]


class HuffmanError(Exception):
    """Base class for everything the encoder core raises."""


class EmptyInputError(HuffmanError, ValueError):
    """No symbols were counted, so there is nothing to build a tree from."""


class DegenerateTreeError(HuffmanError, ValueError):
    """The code table holds a zero-length code (only one distinct symbol)."""


class PartitionWorkerError(HuffmanError):
    """A counting or encoding worker failed; the whole run is aborted."""

    def __init__(self, stage: str, partition: int, cause: BaseException):
        super().__init__(f"{stage} worker for partition {partition} failed: {cause!r}")
        self.stage = stage
        self.partition = partition


@dataclass(frozen=True)
class MergeNode: # one slot in the tree arena
    weight: int
    symbol: Optional[Symbol] = None # only meaningful on leaves
    left: Optional[int] = None # arena handle of the left child
    right: Optional[int] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None


class MergeTree:
    """
    Huffman merge tree stored as an arena of nodes addressed by integer handles.

    Leaves are appended first, in frequency table order, then every merged
    node in the order it was created, so the root is always the last node.
    Children are referenced by handle; no node is shared between parents.
    """

    def __init__(self, nodes: List[MergeNode]):
        if not nodes:
            raise EmptyInputError("a merge tree needs at least one node")
        self.nodes = nodes

    @property
    def root(self) -> int:
        return len(self.nodes) - 1

    @property
    def weight(self) -> int:
        return self.nodes[self.root].weight

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, handle: int) -> MergeNode:
        return self.nodes[handle]

    def leaves(self) -> Iterator[MergeNode]:
        return (n for n in self.nodes if n.is_leaf)

    def depth(self) -> int:
        """Length of the longest root-to-leaf path (0 for a lone leaf)."""
        deepest = 0
        stack: List[Tuple[int, int]] = [(self.root, 0)]
        while stack:
            handle, d = stack.pop()
            node = self.nodes[handle]
            if node.is_leaf:
                deepest = max(deepest, d)
            else:
                stack.append((node.left, d + 1))
                stack.append((node.right, d + 1))
        return deepest


def build_tree(frequency_table: FrequencyTable) -> MergeTree: # frequency_table: dict of symbol -> count
    if not frequency_table:
        raise EmptyInputError("cannot build a Huffman tree from an empty frequency table")

    nodes: List[MergeNode] = []
    # (weight, insertion order, handle): equal weights pop in insertion order
    priority_queue: List[Tuple[int, int, int]] = []
    for symbol, count in frequency_table.items():
        if count <= 0:
            raise ValueError(f"symbol {symbol!r} has non-positive count {count}")
        nodes.append(MergeNode(count, symbol=symbol))
        priority_queue.append((count, len(nodes) - 1, len(nodes) - 1))
    heapq.heapify(priority_queue)

    # Keep merging the two lightest nodes until only the root remains
    while len(priority_queue) > 1:
        left_weight, _, left = heapq.heappop(priority_queue)
        right_weight, _, right = heapq.heappop(priority_queue)
        nodes.append(MergeNode(left_weight + right_weight, left=left, right=right))
        handle = len(nodes) - 1
        heapq.heappush(priority_queue, (left_weight + right_weight, handle, handle))

    return MergeTree(nodes)


def build_code_table(tree: MergeTree) -> CodeTable: # tree: merge tree from build_tree
    """
    Walk the tree and record the path to every leaf as that leaf's code.

    Left edges add '0', right edges add '1'. The walk uses an explicit stack,
    so heavily skewed trees do not hit the recursion limit. A tree that is a
    single leaf maps its symbol to the empty string; callers decide what
    that means for encoding.
    """
    codes: CodeTable = {}
    stack: List[Tuple[int, str]] = [(tree.root, "")]
    while stack:
        handle, code = stack.pop()
        node = tree.node(handle)
        if node.is_leaf:
            codes[node.symbol] = code
            continue
        # right pushed first so the left subtree is visited first
        stack.append((node.right, code + "1"))
        stack.append((node.left, code + "0"))
    return codes


def weighted_length(frequency_table: FrequencyTable, codes: CodeTable) -> int:
    """Total number of payload bits the table produces for these counts."""
    return sum(count * len(codes[symbol]) for symbol, count in frequency_table.items())


def check_encodable(codes: CodeTable) -> None:
    for symbol, code in codes.items():
        if not code:
            raise DegenerateTreeError(
                f"symbol {symbol!r} has a zero-length code; input with a single "
                "distinct symbol cannot be encoded"
            )
