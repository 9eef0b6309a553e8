"""
CLI module for bucketbridge - contains command-line interface components.
"""

from bucketbridge.cli.main import main

__all__ = ["main"]
