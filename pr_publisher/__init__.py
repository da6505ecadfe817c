"""Bitbucket Server pull request publisher."""

__version__ = "0.1.0"
