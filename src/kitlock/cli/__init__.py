"""Command-line interface for kitlock."""
