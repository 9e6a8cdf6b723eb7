"""HTTP surface — FastAPI application, webhook and admin routes."""
