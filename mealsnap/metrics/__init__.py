"""In-memory metrics for the intake pipeline."""
