"""A small MapReduce framework: master, workers, a sequential runner and bundled applications."""

__version__ = "0.1.0"