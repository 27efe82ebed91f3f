"""Command handlers behind the jgh CLI."""
