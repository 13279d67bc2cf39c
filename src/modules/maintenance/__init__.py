"""
Maintenance Module - Household service tickets with crew routing and sign-off.
"""
