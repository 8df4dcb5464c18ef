"""Editor-facing annotations, independent of the wire protocol."""
