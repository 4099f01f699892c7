"""Command-line interface for shopsync."""
