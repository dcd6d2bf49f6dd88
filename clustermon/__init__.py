"""Live dashboard core for a distributed blob-storage cluster."""

__version__ = "0.3.0"
