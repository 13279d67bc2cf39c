"""
Doorbell Module - Building doorbells, ring sessions and front desk routing.
"""
