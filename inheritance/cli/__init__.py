"""Command-line entry points (`inheritance`)."""
