"""Chat model construction."""
