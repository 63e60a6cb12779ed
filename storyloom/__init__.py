"""storyloom - branching-narrative interpretation engine."""

__version__ = "0.3.0"
