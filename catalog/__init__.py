"""
External book metadata lookup.

This package contains:
- Provider response shapes and their mapping onto one canonical record
- The retrying ISBN / title lookup chain
"""
