import pytest

from clusterlod.scene_structs import GroupRequest
from clusterlod.streaming import MeshGroupGraph, RequestDependencyPipeline, Result


def _two_leaf_mesh():
    # Groups 0 and 1 need group 2; group 2 is kept by 0 and 1.
    return MeshGroupGraph(
        group_generated_groups=[[2], [2], []],
        group_generating_groups=[[], [], [0, 1]],
    )


def _three_leaf_mesh():
    return MeshGroupGraph(
        group_generated_groups=[[2], [2], [], [2]],
        group_generating_groups=[[], [], [0, 1, 3], []],
    )


class Recorder:
    def __init__(self, result=Result.SUCCESS):
        self.calls = []
        self.result = result

    def __call__(self, mesh_index, group_index):
        self.calls.append((mesh_index, group_index))
        return self.result


def _run(pipeline, offsets, meshes, requests):
    loads, unloads = Recorder(), Recorder()
    pipeline.queue_requests(requests)
    pipeline.dequeue_load_unload_batch(offsets, meshes, loads, unloads)
    return loads.calls, unloads.calls


def test_load_emits_dependencies_first():
    pipeline = RequestDependencyPipeline(3)
    loads, unloads = _run(pipeline, [0], [_two_leaf_mesh()], [GroupRequest(0, True)])
    assert loads == [(0, 2), (0, 0)]
    assert unloads == []
    assert pipeline.pending_requests() == 0


def test_pending_counts_queued_requests():
    pipeline = RequestDependencyPipeline(3)
    pipeline.queue_requests([GroupRequest(0, True), GroupRequest(1, True)])
    assert pipeline.pending_requests() == 2


def test_shared_dependency_loaded_once():
    pipeline = RequestDependencyPipeline(3)
    mesh = [_two_leaf_mesh()]
    _run(pipeline, [0], mesh, [GroupRequest(0, True)])
    loads, _ = _run(pipeline, [0], mesh, [GroupRequest(1, True)])
    assert loads == [(0, 1)]


def test_unload_keeps_dependency_still_in_use_then_releases_it():
    pipeline = RequestDependencyPipeline(3)
    mesh = [_two_leaf_mesh()]
    _run(pipeline, [0], mesh, [GroupRequest(0, True), GroupRequest(1, True)])
    _, unloads = _run(pipeline, [0], mesh, [GroupRequest(0, False)])
    assert unloads == [(0, 0)]
    _, unloads = _run(pipeline, [0], mesh, [GroupRequest(1, False)])
    assert unloads == [(0, 1), (0, 2)]
    assert pipeline.pending_requests() == 0


def test_pulse_request_is_filtered_out():
    pipeline = RequestDependencyPipeline(3)
    loads, unloads = _run(pipeline, [0], [_two_leaf_mesh()], [GroupRequest(0, True), GroupRequest(0, False)])
    assert loads == []
    assert unloads == []
    assert pipeline.pending_requests() == 0


def test_reload_of_group_unloaded_in_same_batch_is_retried():
    pipeline = RequestDependencyPipeline(4)
    mesh = [_three_leaf_mesh()]
    _run(pipeline, [0], mesh, [GroupRequest(0, True), GroupRequest(1, True)])
    loads, unloads = _run(
        pipeline,
        [0],
        mesh,
        [GroupRequest(0, False), GroupRequest(1, False), GroupRequest(3, True)],
    )
    assert unloads == [(0, 0), (0, 1), (0, 2)]
    assert loads == []
    assert pipeline.pending_requests() == 1

    loads, unloads = _run(pipeline, [0], mesh, [])
    assert loads == [(0, 2), (0, 3)]
    assert unloads == []
    assert pipeline.pending_requests() == 0


def test_stop_and_retry_from_emit_keeps_request():
    pipeline = RequestDependencyPipeline(3)
    mesh = [_two_leaf_mesh()]
    blocked = Recorder(Result.STOP_AND_RETRY)
    pipeline.queue_requests([GroupRequest(0, True)])
    pipeline.dequeue_load_unload_batch([0], mesh, blocked, Recorder())
    assert blocked.calls == [(0, 2)]
    assert pipeline.pending_requests() == 1

    loads = Recorder()
    pipeline.dequeue_load_unload_batch([0], mesh, loads, Recorder())
    assert loads.calls == [(0, 2), (0, 0)]
    assert pipeline.pending_requests() == 0


def test_skip_consumes_request_without_marking_loaded():
    pipeline = RequestDependencyPipeline(3)
    mesh = [_two_leaf_mesh()]
    skipping = Recorder(Result.SKIP)
    pipeline.queue_requests([GroupRequest(0, True)])
    pipeline.dequeue_load_unload_batch([0], mesh, skipping, Recorder())
    assert skipping.calls == [(0, 2)]
    assert pipeline.pending_requests() == 0

    # Group 2 was never loaded, so a later request loads it again.
    loads, _ = _run(pipeline, [0], mesh, [GroupRequest(1, True)])
    assert loads == [(0, 2), (0, 1)]


def test_global_group_maps_to_mesh_relative_index():
    pipeline = RequestDependencyPipeline(6)
    meshes = [_two_leaf_mesh(), _two_leaf_mesh()]
    loads, _ = _run(pipeline, [0, 3], meshes, [GroupRequest(4, True)])
    assert loads == [(1, 2), (1, 1)]


def test_group_before_first_mesh_raises():
    pipeline = RequestDependencyPipeline(4)
    pipeline.queue_requests([GroupRequest(0, True)])
    with pytest.raises(ValueError):
        pipeline.dequeue_load_unload_batch([1], [_two_leaf_mesh()], Recorder(), Recorder())


def test_out_of_range_request_raises():
    pipeline = RequestDependencyPipeline(3)
    with pytest.raises(ValueError):
        pipeline.queue_requests([GroupRequest(3, True)])


def test_mesh_graph_requires_matching_lengths():
    with pytest.raises(ValueError):
        MeshGroupGraph(group_generated_groups=[[]], group_generating_groups=[])


def test_mesh_graph_group_count():
    assert _three_leaf_mesh().group_count == 4