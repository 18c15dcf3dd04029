"""Domain layer: pure intake logic with no I/O beyond its ports."""
