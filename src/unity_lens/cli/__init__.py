"""Command-line interface for Unity Lens."""
