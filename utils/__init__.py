"""Path resolution, caching, transport and monitoring utilities."""
