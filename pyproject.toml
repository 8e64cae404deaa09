[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clusterlod"
version = "0.1.0"
description = "Host-side building blocks for streaming cluster level-of-detail geometry: a pool suballocator, a bounded producer/consumer ring, bit-packed traversal records and a dependency-ordered load/unload pipeline."
requires-python = ">=3.10"
dependencies = []
keywords = ["level-of-detail", "lod", "clusters", "streaming", "allocator", "rendering"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["clusterlod"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 120
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
