"""
mealsnap - meal photo intake pipeline.

Turns raw meal photos into validated derivatives, corrects untrusted AI
analysis payloads and gates upload attempts by time window and per-day
uniqueness.

Structure:
- domain/: Image derivation, analysis correction, upload admission
- infrastructure/: Cache and record lookup adapters
- application/: Intake service orchestrating the domain components
- metrics/: In-memory counters and histograms
- tests/: Test suite
"""

__version__ = "1.0.0"
