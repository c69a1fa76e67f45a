"""Command-line application for sz."""
