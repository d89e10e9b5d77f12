"""Command implementations for the pagegraph CLI."""
