"""
API module - FastAPI application, dependencies and routes.
"""
