"""Bidirectional sync between markdown articles and GitHub Discussions."""

__version__ = "0.1.0"
