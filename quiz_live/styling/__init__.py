"""Styling module for the QuizLive teacher console."""

from .styles import STATUS_COLORS, Styles

__all__ = ["STATUS_COLORS", "Styles"]
