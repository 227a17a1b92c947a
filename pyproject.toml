[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minimr"
version = "0.1.0"
description = "A small MapReduce framework with a master, networked workers and bundled map/reduce applications"
requires-python = ">=3.10"
dependencies = []
keywords = ["mapreduce", "distributed", "parallel", "word-count", "cluster"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
minimr-master = "minimr.cli:master_main"
minimr-worker = "minimr.cli:worker_main"
minimr-sequential = "minimr.sequential:main"

[tool.hatch.build.targets.wheel]
packages = ["minimr"]

[tool.pytest.ini_options]
addopts = "-ra"
