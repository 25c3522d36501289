"""Command-line and interactive shell surfaces."""
