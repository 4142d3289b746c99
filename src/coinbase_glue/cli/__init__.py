"""Command-line interface for the wallet glue."""
