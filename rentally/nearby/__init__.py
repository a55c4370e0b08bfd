"""
Nearby listings.

Responsibilities:
- Work out where the caller is, from explicit coordinates or their IP.
- Ask the candidate store for listings within a radius.
- Annotate each listing with its distance from the caller.
"""
