"""Infrastructure adapters for the intake pipeline ports."""
