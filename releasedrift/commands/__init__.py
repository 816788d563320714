"""Command-line commands for releasedrift."""
