"""
Recommendation engine.

Responsibilities:
- Blend favorites, visit history and random fill into one list per user.
- Keep per-user results in a short-lived cache.
- Degrade to random items when personalisation fails.
"""
