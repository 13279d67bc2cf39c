"""
Catering Module - Community kitchen menus, time slots and orders.
"""
