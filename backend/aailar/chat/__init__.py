"""Real-time chat room for AAILAR.

A single shared room: members authenticate with the room password, exchange
messages (with optional reply and attachment references), and see presence
updates. History is kept in memory only.
"""
