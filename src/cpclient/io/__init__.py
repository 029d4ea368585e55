"""Query helpers that read rows out of the local database."""

from .like_query import LikeQuery

__all__ = ["LikeQuery"]
