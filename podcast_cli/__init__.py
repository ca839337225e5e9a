"""
podcast-cli: a command-line podcast manager with concurrent, resumable downloads.
"""

__version__ = "0.18.0"
