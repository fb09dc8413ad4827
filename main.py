#!/usr/bin/env python3
"""
Main entry point for the database browser CLI
"""

from db_browser.cli.main_cli import main

if __name__ == "__main__":
    main()
