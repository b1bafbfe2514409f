"""AAILAR backend: shared file library with a real-time chat room."""
