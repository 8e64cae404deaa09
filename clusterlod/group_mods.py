"""Batches of cluster group loads and unloads handed from streaming to rendering."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from clusterlod.scene_structs import LoadGroup, UnloadGroup


def clamp_request_count(max_requests: int, reported_count: int) -> int:
    """Limit a request count reported by the GPU to the request list capacity.

    The reported count may overshoot because requests are appended with
    parallel atomics.
    """
    if max_requests < 0 or reported_count < 0:
        raise ValueError("request counts must be non-negative")
    return min(max_requests, reported_count)


def _group_cluster_count(group_cluster_counts: Sequence[Sequence[int]], mesh_index: int, group_index: int) -> int:
    try:
        return group_cluster_counts[mesh_index][group_index]
    except IndexError:
        raise IndexError(f"mesh {mesh_index} has no group {group_index}") from None


def cluster_count_deltas(
    loads: Iterable[LoadGroup],
    unloads: Iterable[UnloadGroup],
    group_cluster_counts: Sequence[Sequence[int]],
    mesh_instance_counts: Sequence[int],
) -> tuple[int, int]:
    """Change in resident clusters and in resident instance clusters.

    ``group_cluster_counts[m][g]`` is the cluster count of group ``g`` of mesh
    ``m`` and ``mesh_instance_counts[m]`` the number of instances of mesh ``m``.
    Returns ``(cluster_delta, instance_cluster_delta)``.
    """
    cluster_delta = 0
    instance_delta = 0
    for load in loads:
        expected = _group_cluster_count(group_cluster_counts, load.mesh_index, load.group_index)
        if load.cluster_count != expected:
            raise ValueError(
                f"load of mesh {load.mesh_index} group {load.group_index} has "
                f"{load.cluster_count} clusters, expected {expected}"
            )
        cluster_delta += load.cluster_count
        instance_delta += load.cluster_count * mesh_instance_counts[load.mesh_index]
    for unload in unloads:
        count = _group_cluster_count(group_cluster_counts, unload.mesh_index, unload.group_index)
        cluster_delta -= count
        instance_delta -= count * mesh_instance_counts[unload.mesh_index]
    return cluster_delta, instance_delta


class GroupModsList:
    """A reusable, bounded batch of group loads and unloads.

    :meth:`write` fills the batch and records how it changes the number of
    resident clusters; :meth:`apply` folds that change into running totals.
    """

    def __init__(self, max_load_unloads: int) -> None:
        if max_load_unloads < 0:
            raise ValueError("capacity must be non-negative")
        self._capacity = max_load_unloads
        self._loads: tuple[LoadGroup, ...] = ()
        self._unloads: tuple[UnloadGroup, ...] = ()
        self._cluster_count_delta = 0
        self._instance_cluster_count_delta = 0

    def write(
        self,
        loads: Iterable[LoadGroup],
        unloads: Iterable[UnloadGroup],
        group_cluster_counts: Sequence[Sequence[int]],
        mesh_instance_counts: Sequence[int],
    ) -> tuple[tuple[LoadGroup, ...], tuple[UnloadGroup, ...]]:
        """Store a new batch, replacing the previous one, and return it."""
        loads = tuple(loads)
        unloads = tuple(unloads)
        if len(loads) > self._capacity or len(unloads) > self._capacity:
            raise ValueError(f"batch exceeds the capacity of {self._capacity} loads and unloads")

        for unload in unloads:
            root_index = len(group_cluster_counts[unload.mesh_index]) - 1
            if unload.group_index == root_index:
                raise ValueError(f"root group {root_index} of mesh {unload.mesh_index} must never be unloaded")

        load_ids = {(load.mesh_index, load.group_index) for load in loads}
        unload_ids = {(unload.mesh_index, unload.group_index) for unload in unloads}
        overlap = load_ids & unload_ids
        if overlap:
            raise ValueError(f"groups both loaded and unloaded in one batch: {sorted(overlap)}")

        cluster_delta, instance_delta = cluster_count_deltas(
            loads, unloads, group_cluster_counts, mesh_instance_counts
        )
        self._loads = loads
        self._unloads = unloads
        self._cluster_count_delta = cluster_delta
        self._instance_cluster_count_delta = instance_delta
        return loads, unloads

    def apply(self, total_resident_clusters: int, total_resident_instance_clusters: int) -> tuple[int, int]:
        """Return the running totals updated by the most recently written batch."""
        return (
            total_resident_clusters + self._cluster_count_delta,
            total_resident_instance_clusters + self._instance_cluster_count_delta,
        )