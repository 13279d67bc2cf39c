"""
Facilities Module - Shared building facilities, opening hours and reservations.
"""
