"""Chunked put/get of payloads over the gateway block API."""
