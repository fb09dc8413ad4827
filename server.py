#!/usr/bin/env python3
"""
API server entry point for the database browser
"""

from db_browser.server import run

if __name__ == "__main__":
    run()
