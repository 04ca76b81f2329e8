#!/usr/bin/env python3
"""
Convenience entry point for running homebook directly.

Usage: python run_homebook.py [command] [options]
"""

from homebook.cli.app import app

if __name__ == "__main__":
    app()
