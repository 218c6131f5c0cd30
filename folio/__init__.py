"""
Folio - a static site builder for a portfolio and blog.

Folio reads markdown documents with YAML front matter, renders them
through Jinja2 layouts (home, page, post) with heading outlines and
cross-links between documents, and assembles a static site with a
blog index, tag pages, RSS feed and sitemap.
"""

__version__ = "1.0.0"

from .content import ContentStore, Collection, Document
from .errors import (
    FolioError,
    ValidationError,
    DuplicateSlugError,
    LayoutNotFoundError,
    BrokenReferenceError,
)
from .renderer import Renderer
from .site import Folio

__all__ = [
    'Folio', 'ContentStore', 'Collection', 'Document', 'Renderer',
    'FolioError', 'ValidationError', 'DuplicateSlugError',
    'LayoutNotFoundError', 'BrokenReferenceError',
]
