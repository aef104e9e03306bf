"""Command-line interface for evpi-ml."""
