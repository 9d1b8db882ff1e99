"""Command-line interface for Stillframe."""
