"""Pure helpers shared by the models."""

from .like_pattern import escape_filter

__all__ = ["escape_filter"]
