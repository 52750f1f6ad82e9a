"""Core: errors, ports, app state."""
