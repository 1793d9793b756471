"""HTTP surface for the TrashTracker screens."""
