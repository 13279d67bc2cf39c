"""
Join Requests Module - Asking to join a community, building or household.
"""
