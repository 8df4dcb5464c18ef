"""Text scanning, validation and the per-revision pass."""
