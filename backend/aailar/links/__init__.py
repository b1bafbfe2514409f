"""Shared links library for AAILAR.

Password-gated list of titled, described URLs kept in DuckDB. New and
removed links are announced in the chat room.
"""
