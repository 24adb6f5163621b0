"""API layer — FastAPI HTTP + WebSocket surface."""
