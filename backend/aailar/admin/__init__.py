"""Admin endpoints for the chat room."""
