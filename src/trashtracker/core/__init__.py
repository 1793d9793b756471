"""Framework-independent classification flow and screen state."""
