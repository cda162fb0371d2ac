"""
HTTP read API for the funding tables
"""
