"""Bit packing helpers and the encodings of LOD hierarchy nodes and traversal jobs."""

from __future__ import annotations

from dataclasses import dataclass

TRAVERSAL_WORKGROUP_SIZE = 256

# Power of two in range [1, 32]
NODE_BATCH_SIZE = 8
# Power of two in range [8, 32]
CLUSTER_BATCH_SIZE = 8

# Jobs are encoded as 64-bit integers so the scene is not limited to ~2^15 instances.
INSTANCE_BITS = 32
NODE_BITS = 26
CLUSTER_BATCH_BITS = 5
MAX_CLUSTERS_PER_NODE = 256
TRAVERSAL_MAX_INSTANCES = 1 << INSTANCE_BITS
TRAVERSAL_MAX_NODES = 1 << NODE_BITS

TRAVERSAL_NEAREST_INSTANCE_COUNT = 4

_WORD_BITS = 64
_WORD_MASK = (1 << _WORD_BITS) - 1

_BATCH_BITS = 5


def _mask(bit_count: int) -> int:
    if bit_count < 0 or bit_count > _WORD_BITS:
        raise ValueError(f"bit count must be in [0, {_WORD_BITS}], got {bit_count}")
    return (1 << bit_count) - 1


def push_bits(result: int, bit_values: int, bit_count: int) -> int:
    """Shift ``result`` left by ``bit_count`` and put the low bits of ``bit_values`` below.

    The value is kept to 64 bits.
    """
    mask = _mask(bit_count)
    return ((result << bit_count) | (bit_values & mask)) & _WORD_MASK


def pop_bits(value: int, bit_count: int) -> tuple[int, int]:
    """Take the lowest ``bit_count`` bits of ``value``.

    Returns the extracted bits and the value shifted right past them.
    """
    mask = _mask(bit_count)
    return value & mask, value >> bit_count


@dataclass(frozen=True)
class NodeRange:
    """A node's range of child nodes."""

    cluster_node: int
    child_offset: int
    child_count_minus_one: int


@dataclass(frozen=True)
class ClusterRange:
    """A leaf node's range of clusters within one cluster group."""

    cluster_node: int
    cluster_group: int
    cluster_count_minus_one: int


def decode_children(encoded: int) -> NodeRange:
    """Decode a node's packed children field as a range of child nodes."""
    cluster_node, encoded = pop_bits(encoded, 1)
    child_offset, encoded = pop_bits(encoded, 26)
    child_count_minus_one, _ = pop_bits(encoded, 5)
    return NodeRange(cluster_node, child_offset, child_count_minus_one)


def decode_clusters(encoded: int) -> ClusterRange:
    """Decode a node's packed children field as a range of clusters."""
    cluster_node, encoded = pop_bits(encoded, 1)
    cluster_group, encoded = pop_bits(encoded, 23)
    cluster_count_minus_one, _ = pop_bits(encoded, 8)
    return ClusterRange(cluster_node, cluster_group, cluster_count_minus_one)


@dataclass(frozen=True)
class Job:
    """A decoded traversal queue entry."""

    ready: int
    parent_index: int
    batch_index: int
    object_index: int


def _encode_job(object_index: int, parent_index: int, batch_index: int) -> int:
    result = push_bits(0, 1, 1)
    result = push_bits(result, parent_index, NODE_BITS)
    result = push_bits(result, batch_index, _BATCH_BITS)
    return push_bits(result, object_index, INSTANCE_BITS)


def _decode_job(encoded: int) -> Job:
    object_index, encoded = pop_bits(encoded, INSTANCE_BITS)
    batch_index, encoded = pop_bits(encoded, _BATCH_BITS)
    parent_index, encoded = pop_bits(encoded, NODE_BITS)
    ready, _ = pop_bits(encoded, 1)
    return Job(ready, parent_index, batch_index, object_index)


def encode_node_job(object_index: int, parent_index: int, batch_index: int) -> int:
    """Pack a ready node job into a 64-bit integer."""
    return _encode_job(object_index, parent_index, batch_index)


def decode_node_job(encoded: int) -> Job:
    """Unpack a node job produced by :func:`encode_node_job`."""
    return _decode_job(encoded)


def encode_cluster_job(object_index: int, parent_index: int, batch_index: int) -> int:
    """Pack a ready cluster job into a 64-bit integer."""
    return _encode_job(object_index, parent_index, batch_index)


def decode_cluster_job(encoded: int) -> Job:
    """Unpack a cluster job produced by :func:`encode_cluster_job`."""
    return _decode_job(encoded)