"""Socratic tutor backend: tutoring sessions and gamified progression."""

__version__ = "0.1.0"
