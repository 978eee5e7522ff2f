"""Client-side board state synchronization for Kanban boards."""

__version__ = "0.1.0"
