"""Ranked, paginated listing search."""
