"""A small Unix-style file system held in memory, with a buffer cache, a redo log, an image builder and simple tools."""

__version__ = "0.1.0"