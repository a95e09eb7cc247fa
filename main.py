#!/usr/bin/env python3

"""
clawdeploy
Main entry point for the application
"""

from clawdeploy.cli.main import cli

if __name__ == "__main__":
    cli()
