"""HTTP and WebSocket API for the questionnaire service."""
