"""
Exceptions raised while loading, rendering, and assembling a Folio site.

Every error aborts the build. Messages always carry the path of the
offending document so the author knows which file to fix.
"""


class FolioError(Exception):
    """Base error for Folio."""


class ValidationError(FolioError):
    """A document's front matter is missing a field or holds a bad value."""

    def __init__(self, path, field, message=None):
        self.path = path
        self.field = field
        detail = message or f"missing required field '{field}'"
        super().__init__(f"{path}: {detail}")


class DuplicateSlugError(ValidationError):
    """Two documents claim the same slug or output route."""

    def __init__(self, path, slug, other_path):
        self.slug = slug
        self.other_path = other_path
        super().__init__(
            path, 'slug',
            f"slug '{slug}' is already used by {other_path}"
        )


class LayoutNotFoundError(FolioError):
    """A document names a layout for which no template exists."""

    def __init__(self, layout, path=None):
        self.layout = layout
        self.path = path
        where = f"{path}: " if path else ''
        super().__init__(f"{where}no template found for layout '{layout}'")


class BrokenReferenceError(FolioError):
    """A cross-reference points at a document that does not exist."""

    def __init__(self, path, target):
        self.path = path
        self.target = target
        super().__init__(f"{path}: broken reference to '{target}'")
