"""Scene and streaming records shared between the renderer and the streaming logic."""

from __future__ import annotations

import enum
from dataclasses import dataclass

# The cluster ID encodes the group and a cluster index relative to the group.
CLUSTER_ID_GROUP_SHIFT = 8
CLUSTER_ID_CLUSTER_MASK = 0xFF

STREAM_WORKGROUP_SIZE = 256

_GLOBAL_GROUP_BITS = 31
_GLOBAL_GROUP_MASK = (1 << _GLOBAL_GROUP_BITS) - 1

_VISUALIZE_NAMES = (
    "None",
    "Triangle Colors",
    "Cluster Colors",
    "Generating Group Colors",
    "Mesh Colors",
    "Cluster LOD",
    "Triangle Area",
    "Target Pixel Error",
)


class Visualize(enum.IntEnum):
    """Debug colouring modes."""

    NONE = 0
    TRIANGLE_COLORS = 1
    CLUSTER_COLORS = 2
    GENERATING_GROUP_COLORS = 3
    MESH_COLORS = 4
    CLUSTER_LOD = 5
    TRIANGLE_AREA = 6
    TARGET_PIXEL_ERROR = 7

    @property
    def label(self) -> str:
        """The name shown in the user interface."""
        return _VISUALIZE_NAMES[self.value]


class StreamingGroupFlags(enum.IntFlag):
    """Per-group residency flags written by traversal."""

    IS_NEEDED = 0x1
    WAS_NEEDED = 0x2
    IS_ROOT = 0x4


def make_cluster_id(group_index: int, cluster_index: int) -> int:
    """Combine a group index and a group-relative cluster index into a cluster ID."""
    if group_index < 0:
        raise ValueError("group index must be non-negative")
    if not 0 <= cluster_index <= CLUSTER_ID_CLUSTER_MASK:
        raise ValueError(f"cluster index {cluster_index} does not fit in a cluster ID")
    return (group_index << CLUSTER_ID_GROUP_SHIFT) | cluster_index


def split_cluster_id(cluster_id: int) -> tuple[int, int]:
    """Return the ``(group_index, cluster_index)`` encoded in a cluster ID."""
    if cluster_id < 0:
        raise ValueError("cluster ID must be non-negative")
    return cluster_id >> CLUSTER_ID_GROUP_SHIFT, cluster_id & CLUSTER_ID_CLUSTER_MASK


def workgroup_count(item_count: int) -> int:
    """Number of streaming compute workgroups needed to cover ``item_count`` items."""
    if item_count < 0:
        raise ValueError("item count must be non-negative")
    return -(-item_count // STREAM_WORKGROUP_SIZE)


@dataclass(frozen=True)
class GroupRequest:
    """A request to load or unload a group, indexed among all scene meshes."""

    global_group: int
    load: bool

    def __post_init__(self) -> None:
        if not 0 <= self.global_group <= _GLOBAL_GROUP_MASK:
            raise ValueError(f"global group {self.global_group} does not fit in 31 bits")

    def pack(self) -> int:
        """Pack into the 32-bit layout: group in the low 31 bits, load in the top bit."""
        return self.global_group | (int(bool(self.load)) << _GLOBAL_GROUP_BITS)

    @classmethod
    def unpack(cls, packed: int) -> GroupRequest:
        """Build a request from its packed 32-bit form."""
        if not 0 <= packed < 1 << 32:
            raise ValueError("packed request must be a 32-bit unsigned value")
        return cls(packed & _GLOBAL_GROUP_MASK, bool(packed >> _GLOBAL_GROUP_BITS))

    def __str__(self) -> str:
        return f"GroupRequest{{globalGroup {self.global_group} load {int(self.load)}}}"


@dataclass(frozen=True)
class LoadGroup:
    """A group of a mesh to make resident, with the number of clusters it holds."""

    mesh_index: int
    group_index: int
    cluster_count: int

    def __str__(self) -> str:
        return (
            f"LoadGroup{{meshIndex {self.mesh_index} groupIndex {self.group_index} "
            f"clusterCount {self.cluster_count}}}"
        )


@dataclass(frozen=True)
class UnloadGroup:
    """A group of a mesh to evict."""

    mesh_index: int
    group_index: int

    def __str__(self) -> str:
        return f"UnloadGroup{{meshIndex {self.mesh_index} groupIndex {self.group_index}}}"


@dataclass
class StreamRequestCounts:
    """The number of requests written and the capacity of the request list."""

    requests_count: int = 0
    requests_size: int = 0