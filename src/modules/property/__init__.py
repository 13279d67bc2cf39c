"""
Property Module - Communities, buildings, households and working groups.

Role tables and membership lookups in `permissions` are shared by the other
modules for route-level access checks.
"""
