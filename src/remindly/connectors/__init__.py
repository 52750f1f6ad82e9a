"""Connectors: console REPL and the background upcoming-reminder runner."""
