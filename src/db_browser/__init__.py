"""
Database browser: schema discovery, row browsing and relationship navigation
"""

__version__ = "0.1.0"
