"""Console entry point, bootstrap and slash commands."""
