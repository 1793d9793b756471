"""TrashTracker: classify a photo of an object and explain how to dispose of it."""

__version__ = "0.1.0"
