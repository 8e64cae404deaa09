"""Dependency-ordered scheduling of cluster group loads and unloads."""

from __future__ import annotations

import bisect
import enum
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from clusterlod.scene_structs import GroupRequest

_U32_MASK = 0xFFFFFFFF


class Result(enum.IntEnum):
    """Outcome of emitting a single load or unload."""

    SUCCESS = 0  # keep loading/unloading
    SKIP = 1  # out of memory, skip and hopefully an unload frees some
    STOP_AND_RETRY = 2  # pipeline full, retry later


EmitCallback = Callable[[int, int], Result]


@dataclass(frozen=True)
class MeshGroupGraph:
    """The group dependency graph of one mesh.

    ``group_generated_groups[g]`` lists the groups that must be resident before
    ``g`` is loaded. ``group_generating_groups[g]`` lists the groups that depend
    on ``g`` and keep it resident while they are loaded.
    """

    group_generated_groups: Sequence[Sequence[int]]
    group_generating_groups: Sequence[Sequence[int]]

    def __post_init__(self) -> None:
        if len(self.group_generated_groups) != len(self.group_generating_groups):
            raise ValueError("both dependency lists must have one entry per group")

    @property
    def group_count(self) -> int:
        """Number of groups in the mesh."""
        return len(self.group_generated_groups)


class RequestDependencyPipeline:
    """Turns top-level group requests into dependency-ordered loads and unloads.

    Top-level requests may be superseded by newer ones and skipped; the loads
    and unloads they expand into are emitted in dependency order.
    """

    def __init__(self, global_group_count: int) -> None:
        if global_group_count < 0:
            raise ValueError("group count must be non-negative")
        self._group_count = global_group_count
        # Lets a newer request shortcut older ones still in the queue.
        self._expected = [False] * global_group_count
        # Pins top-level requests so an orphaned dependency is not unloaded.
        self._needed = [False] * global_group_count
        # Tracks which loads have actually been emitted.
        self._loaded = [False] * global_group_count
        # Groups unloaded in the current batch must not be reloaded in it.
        self._batch_unloads: set[int] = set()
        self._top_level_requests: deque[GroupRequest] = deque()
        self._pending = 0

    def queue_requests(self, requests: Iterable[GroupRequest]) -> None:
        """Append a batch of top-level requests from the render thread."""
        requests = list(requests)
        for request in requests:
            group = request.global_group
            if not 0 <= group < self._group_count:
                raise ValueError(f"global group {group} is out of range")
            load = bool(request.load)
            self._expected[group] = load
            if self._needed[group] != load:
                self._pending += 1
            else:
                self._pending -= 1
        self._top_level_requests.extend(requests)

    def dequeue_load_unload_batch(
        self,
        mesh_group_offsets: Sequence[int],
        meshes: Sequence[MeshGroupGraph],
        emit_load: EmitCallback,
        emit_unload: EmitCallback,
    ) -> None:
        """Emit one batch of loads and unloads in dependency order.

        ``mesh_group_offsets`` holds, sorted, the global index of each mesh's
        first group. Processing stops when a callback returns
        :attr:`Result.STOP_AND_RETRY`; that request is retried next time.
        """
        self._batch_unloads.clear()
        while self._top_level_requests:
            request = self._top_level_requests[0]
            group = request.global_group
            load = bool(request.load)

            # Outdated by a newer request, or a duplicate of one already handled.
            if self._expected[group] != load or self._needed[group] == load:
                self._top_level_requests.popleft()
                continue

            mesh_index = bisect.bisect_right(mesh_group_offsets, group) - 1
            if mesh_index < 0:
                raise ValueError(f"global group {group} precedes the first mesh")
            mesh_group_offset = mesh_group_offsets[mesh_index]
            mesh_group_index = group - mesh_group_offset
            mesh = meshes[mesh_index]

            if load:
                result = self._load_recursive(
                    mesh.group_generated_groups, mesh_group_offset, mesh_index, mesh_group_index, emit_load
                )
                # Pinned even when skipped.
                self._needed[group] = True
            else:
                self._needed[group] = False
                result = self._unload_recursive(
                    mesh.group_generated_groups,
                    mesh.group_generating_groups,
                    mesh_group_offset,
                    mesh_index,
                    mesh_group_index,
                    emit_unload,
                )

            if result in (Result.SUCCESS, Result.SKIP):
                self._top_level_requests.popleft()
                self._pending -= 1
            else:
                # Reset so the retry passes the duplicate filter.
                self._needed[group] = not load
                break

    def pending_requests(self) -> int:
        """Top-level requests still to be handled, as an unsigned 32-bit count."""
        return self._pending & _U32_MASK

    def _load_recursive(
        self,
        generated_groups: Sequence[Sequence[int]],
        mesh_group_offset: int,
        mesh_index: int,
        mesh_group_index: int,
        emit_load: EmitCallback,
    ) -> Result:
        global_group = mesh_group_offset + mesh_group_index
        if self._loaded[global_group]:
            return Result.SUCCESS

        for dependency in generated_groups[mesh_group_index]:
            result = self._load_recursive(generated_groups, mesh_group_offset, mesh_index, dependency, emit_load)
            if result != Result.SUCCESS:
                return result

        # A dependency unloaded by another request in this batch must wait.
        if global_group in self._batch_unloads:
            return Result.STOP_AND_RETRY

        result = Result(emit_load(mesh_index, mesh_group_index))
        if result == Result.SUCCESS:
            self._loaded[global_group] = True
        return result

    def _unload_recursive(
        self,
        generated_groups: Sequence[Sequence[int]],
        generating_groups: Sequence[Sequence[int]],
        mesh_group_offset: int,
        mesh_index: int,
        mesh_group_index: int,
        emit_unload: EmitCallback,
    ) -> Result:
        global_group = mesh_group_offset + mesh_group_index
        if self._needed[global_group]:
            return Result.SUCCESS

        if any(self._loaded[mesh_group_offset + dependent] for dependent in generating_groups[mesh_group_index]):
            return Result.SUCCESS

        result = Result.SUCCESS
        if self._loaded[global_group]:
            result = Result(emit_unload(mesh_index, mesh_group_index))

        # Orphaned dependencies are searched even if this group was already
        # unloaded, so that a retry can finish the job.
        if result == Result.SUCCESS:
            self._loaded[global_group] = False
            self._batch_unloads.add(global_group)
            for dependency in generated_groups[mesh_group_index]:
                result = self._unload_recursive(
                    generated_groups, generating_groups, mesh_group_offset, mesh_index, dependency, emit_unload
                )
                if result != Result.SUCCESS:
                    return result
        return result