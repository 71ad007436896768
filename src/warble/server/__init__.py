"""Request pipeline: dispatch, negotiation, error handling, ASGI."""
