"""Command-line interface for project-index."""
