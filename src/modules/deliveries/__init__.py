"""
Deliveries Module - Package lockers, parcel check-in and mailbox notices.
"""
