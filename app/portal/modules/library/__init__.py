"""
Moderated resource library: uploads start PENDING and are public once APPROVED.
"""
