"""Priority inference (model tier + deterministic fallback)."""
