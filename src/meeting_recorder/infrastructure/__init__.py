"""Infrastructure adapters; import concrete adapters by module path."""
