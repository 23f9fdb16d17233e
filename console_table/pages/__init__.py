"""Per-screen state for paginated tables."""
