"""Conversation feature package: chat sessions, transcripts and reply generation.

Sessions and their messages live in PostgreSQL; replies come from an
OpenAI-compatible completion service.
"""
