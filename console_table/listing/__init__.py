"""Reading paginated collections from the backend."""
