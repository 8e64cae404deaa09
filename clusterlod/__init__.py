"""Host-side building blocks for streaming cluster LOD geometry: pool allocation, a
producer/consumer ring, bit-packed records and dependency-ordered load/unload batches."""

__version__ = "0.1.0"
__all__ = [
    "bits",
    "group_mods",
    "pool_allocator",
    "producer_consumer",
    "scene_structs",
    "streaming",
]