"""
Multi-turn chat runtime: a Redis-backed chat session keyspace with a
per-user index, and reassembly of streamed agent replies into messages.
"""

__version__ = "0.1.0"
