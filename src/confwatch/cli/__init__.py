"""Command-line interface for confwatch."""
