"""
Announcements Module - System, community and building notices with read tracking.
"""
