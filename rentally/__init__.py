"""
Rentally discovery service.

Personalized recommendations, ranked search and nearby lookup for the
property and vehicle rental marketplace.
"""
