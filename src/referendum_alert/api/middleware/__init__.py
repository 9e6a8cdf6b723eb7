"""Request middleware and shared-secret checks."""
