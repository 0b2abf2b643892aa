"""Infrastructure layer: resolution services built on the I/O layer."""
