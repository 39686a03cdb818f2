#!/usr/bin/env python3
"""
Convenience entry point for running studyplanner directly.

Usage: python planner.py [command] [options]
"""

from studyplanner.cli.app import app

if __name__ == "__main__":
    app()
