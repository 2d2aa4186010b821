"""
Database package — optional MongoDB persistence.
"""
