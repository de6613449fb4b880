"""
Internal Portal
Blueprint registry.
"""
