"""Sorted-pair keccak Merkle trees, matching OpenZeppelin's MerkleProof."""

from __future__ import annotations

from typing import Iterable, Sequence

from eth_utils import keccak


def hash_pair(a: bytes, b: bytes) -> bytes:
    return keccak(a + b) if a < b else keccak(b + a)


def process_proof(proof: Iterable[bytes], leaf: bytes) -> bytes:
    """Recompute the root from ``leaf`` and its sibling path."""
    computed = leaf
    for sibling in proof:
        computed = hash_pair(computed, sibling)
    return computed


def verify(proof: Iterable[bytes], root: bytes, leaf: bytes) -> bool:
    return process_proof(proof, leaf) == root


def build_tree(leaves: Sequence[bytes]) -> list[list[bytes]]:
    """Build every level of a tree from ``leaves``, bottom level first.

    An odd node at the end of a level is carried up unchanged.
    """
    if not leaves:
        raise ValueError("cannot build a Merkle tree without leaves")
    levels = [list(leaves)]
    while len(levels[-1]) > 1:
        level = levels[-1]
        parents = [
            hash_pair(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)
        ]
        if len(level) % 2:
            parents.append(level[-1])
        levels.append(parents)
    return levels


def root_and_proof(leaves: Sequence[bytes], index: int) -> tuple[bytes, list[bytes]]:
    """Root of the tree over ``leaves`` and the inclusion path for ``leaves[index]``."""
    levels = build_tree(leaves)
    proof: list[bytes] = []
    position = index
    for level in levels[:-1]:
        sibling = position ^ 1
        if sibling < len(level):
            proof.append(level[sibling])
        position //= 2
    return levels[-1][0], proof
