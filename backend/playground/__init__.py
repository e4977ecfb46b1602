"""Multi-model AI playground backend."""

__version__ = "0.1.0"
