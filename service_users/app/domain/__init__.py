"""
Domain logic for Users Service: the user directory and the visit counter.
"""
