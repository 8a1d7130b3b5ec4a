"""Service adapters: money helpers, catalog, checkout and lead capture."""
