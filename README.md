# clusterlod

Host-side bookkeeping for streaming cluster level-of-detail meshes. It uses
only the standard library.

## Modules

- `clusterlod.pool_allocator`
  - `PoolAllocator` is a thread-safe suballocator over a single address range.
    It rounds each allocation up to a power of two with `bit_ceil`. Its free
    list is sorted by size and address. Freed blocks are not merged.
    - `allocate` raises `MemoryError` when no free block fits the request.
    - `deallocate` raises `ValueError` when a block is freed twice.
    - The allocator reports `bytes_allocated()`, `size()`, `offset_of()`,
      `internal_fragmentation()`, `external_fragmentation()` and
      `fragmentation()`.
  - `PoolMemory` is a single allocation. Call `release()` or leave a `with`
    block to return it to the pool. `address()` or `int(...)` gives its
    address.
- `clusterlod.producer_consumer`
  - `ProducerConsumer` is a fixed-capacity ring of reusable items shared by one
    producer thread and one consumer thread.
  - It offers blocking (`wait_*`) and non-blocking (`try_*`) variants of
    `produce`, `consume` and `maybe_consume`.
  - It also provides `cancel()`, `canceled()`, `len()`, `empty()`, `full()`,
    `promised_size()`, `promised_empty()`, `drain()` and `storage()`.
  - A produce callback may return a replacement item for its slot.
  - A `maybe_*` consume callback keeps the item unless it returns `True`.
- `clusterlod.bits`
  - `push_bits` and `pop_bits` pack and unpack bit fields in 64-bit values.
  - `decode_children` returns a `NodeRange` and `decode_clusters` returns a
    `ClusterRange`.
  - `encode_node_job`, `decode_node_job`, `encode_cluster_job` and
    `decode_cluster_job` convert between traversal jobs and their 64-bit
    encoding. Decoding gives a `Job`.
  - The module also holds the traversal bit-width constants.
- `clusterlod.scene_structs`
  - `Visualize` lists the debug colour modes. Each mode has a `label`.
  - `StreamingGroupFlags` holds the streaming group flags.
  - `make_cluster_id` and `split_cluster_id` combine and separate cluster IDs.
  - `workgroup_count` computes workgroup counts for 256-wide workgroups.
  - `GroupRequest` has `pack` and `unpack` for its 32-bit layout.
  - The module also defines the `LoadGroup`, `UnloadGroup` and
    `StreamRequestCounts` records.
- `clusterlod.streaming`
  - `RequestDependencyPipeline` turns top-level `GroupRequest`s into loads and
    unloads, with dependencies first, for meshes described by
    `MeshGroupGraph`.
  - Your callbacks emit each operation and return a `Result`:
    - `SUCCESS`
    - `SKIP`
    - `STOP_AND_RETRY`, which ends the batch so that the request is retried
      later.
- `clusterlod.group_mods`
  - `GroupModsList` holds one bounded batch of loads and unloads. `write`
    rejects the following with `ValueError`:
    - a batch over capacity;
    - the unloading of a mesh's root (last) group;
    - a group that is both loaded and unloaded;
    - mismatched cluster counts.
  - `apply` returns running resident-cluster totals updated by the last batch.
  - `cluster_count_deltas` computes those changes directly.
  - `clamp_request_count` limits an over-reported request count to the list's
    capacity.

## Installation

```
pip install .
```

With test dependencies:

```
pip install .[test]
```

## Examples

```python
from clusterlod.pool_allocator import PoolAllocator, PoolMemory

pool = PoolAllocator(0x1000, 1 << 20)
with PoolMemory(pool, 300, 128) as block:
    print(hex(block.address()), pool.bytes_allocated())  # 300 bytes in use
print(pool.bytes_allocated())  # 0 once the block is released
```

```python
from clusterlod.producer_consumer import ProducerConsumer

queue = ProducerConsumer([[] for _ in range(2)])
queue.try_produce(lambda item: item.append("batch"))
queue.try_consume(lambda item: print(item.pop()))  # prints "batch"
```

```python
from clusterlod.scene_structs import GroupRequest
from clusterlod.streaming import MeshGroupGraph, RequestDependencyPipeline, Result

# Group 0 needs group 1 resident first.
mesh = MeshGroupGraph(
    group_generated_groups=[[1], [], []],
    group_generating_groups=[[], [0], []],
)
pipeline = RequestDependencyPipeline(3)
pipeline.queue_requests([GroupRequest(0, True)])

loads = []

def emit_load(mesh_index, group_index):
    loads.append((mesh_index, group_index))
    return Result.SUCCESS

def emit_unload(mesh_index, group_index):
    return Result.SUCCESS

pipeline.dequeue_load_unload_batch([0], [mesh], emit_load, emit_unload)
print(loads)                        # [(0, 1), (0, 0)]
print(pipeline.pending_requests())  # 0
```

```python
from clusterlod.bits import decode_node_job, encode_node_job

job = decode_node_job(encode_node_job(5, 3, 2))
print(job)  # Job(ready=1, parent_index=3, batch_index=2, object_index=5)
```

## What this package does not do

This package only does the host-side bookkeeping. It does not:

- render anything;
- talk to a GPU;
- build acceleration structures;
- load mesh files;
- build LOD hierarchies;
- provide a command-line program.

`PoolAllocator` hands out plain integer addresses. You reserve the memory those
addresses refer to yourself.

## Running the tests

```
pytest
```