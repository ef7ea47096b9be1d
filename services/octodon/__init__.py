"""
Octodon: a single-owner, Mastodon-compatible content API.
"""

__version__ = "0.1.0"
