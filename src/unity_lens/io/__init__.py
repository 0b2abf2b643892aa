"""I/O layer: remote connectors and local persistence."""
