"""Leitner-box progress tracking for chaptered quiz material."""
__version__ = "0.1.0"
