"""Redis list polling bridge with lock-aware, self-throttling consumers."""

__version__ = "0.3.0"
