from .client import HttpxTmdbClient
from .resolver import TmdbIdentifierResolver

__all__ = ["HttpxTmdbClient", "TmdbIdentifierResolver"]
