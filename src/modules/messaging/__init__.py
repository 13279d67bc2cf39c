"""
Messaging Module - Household conversations, messages and call sessions.
"""
