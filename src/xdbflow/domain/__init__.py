"""Consistency orchestration over an eventually-indexed entity store."""
