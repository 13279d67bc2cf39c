"""
Inventory Module - Household rooms, cabinets, categories and items.
"""
