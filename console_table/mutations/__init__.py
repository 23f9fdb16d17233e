"""Write operations on table records."""
