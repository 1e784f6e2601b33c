"""FastAPI integration: dependencies, responses and error handlers."""
