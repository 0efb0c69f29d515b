"""Core narrator primitives (context stacking for the system prompt).

Kept free of FastAPI concerns so it can be reused by API routes, CLI, and tests.
"""
