[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memsim"
version = "0.1.0"
description = "Simulated memory allocators: buddy system, slab, pool and a hybrid of the three"
requires-python = ">=3.10"
dependencies = []
keywords = ["memory", "allocator", "buddy system", "slab", "pool", "simulation", "education"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
memsim = "memsim.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["memsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
