"""Domain models for Unity Lens."""
