"""HTTP surface: FastAPI app, routes and the SSE emitter."""
