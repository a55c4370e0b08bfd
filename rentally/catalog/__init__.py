"""
Candidate catalog.

Responsibilities:
- Typed property / vehicle records shared by every discovery feature.
- Explicit per-kind price and rating resolution.
- The repository interface the discovery core reads through, plus an
  in-memory implementation backed by pandas.
"""
