"""Command line entrypoints."""
