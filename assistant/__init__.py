"""Conversation session, summarizing compressor, persistence and usage accounting."""
