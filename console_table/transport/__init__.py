"""HTTP transport to the console backend."""
