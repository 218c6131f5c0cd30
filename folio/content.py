"""
Content store for Folio.

Reads markdown documents with YAML front matter from a content
directory, validates their metadata and groups them into collections
by layout. Documents under ``drafts/`` form a separate sub-collection
that only takes part in a build when drafts are requested.
"""

import os
import re
import logging
from dataclasses import dataclass, field
from datetime import datetime, date, timezone
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ValidationError, DuplicateSlugError

LAYOUTS = ('page', 'post', 'home')
REQUIRED_FIELDS = ('title', 'layout')
DRAFTS_DIR = 'drafts'
DATE_FORMATS = ['%Y-%m-%dT%H:%M:%S%z', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d', '%b %d, %Y']

FRONTMATTER_RE = re.compile(r'\A---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)', re.DOTALL)
DATED_STEM_RE = re.compile(r'^(\d{4}-\d{2}-\d{2})-(.+)$')

logger = logging.getLogger('Folio.content')


def slugify(text):
    """Convert text to a lowercase, hyphen-separated URL-safe slug."""
    text = str(text).lower()
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[\s_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-')


def parse_date(value):
    """Parse a front matter date, returning None when it cannot be read.

    Offset-aware datetimes are converted to naive UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(value.strip(), fmt)
            except ValueError:
                continue
            return parse_date(parsed)
    return None


def split_front_matter(text):
    """Return (front_matter_source, body); front matter is None if absent."""
    text = text.replace('\r\n', '\n')
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end():].strip()


@dataclass
class Document:
    """A single page or post."""
    path: str
    slug: str
    title: str
    layout: str
    body: str
    tags: Tuple[str, ...] = ()
    date: Optional[datetime] = None
    draft: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def sort_key(self):
        return (self.date or datetime.min, self.slug)


class Collection:
    """Documents sharing one layout kind, keyed by slug."""

    def __init__(self, layout):
        self.layout = layout
        self._documents = {}

    def add(self, document, supersede=False):
        existing = self._documents.get(document.slug)
        if existing is not None and not supersede:
            raise DuplicateSlugError(document.path, document.slug, existing.path)
        if existing is not None:
            logger.warning(f"Draft {document.path} supersedes {existing.path}")
        self._documents[document.slug] = document

    def get(self, slug):
        return self._documents.get(slug)

    def by_date(self):
        """Documents newest first; ties fall back to slug order."""
        oldest_first = sorted(self._documents.values(), key=lambda d: d.sort_key)
        return list(reversed(oldest_first))

    def __iter__(self):
        return iter(sorted(self._documents.values(), key=lambda d: d.slug))

    def __len__(self):
        return len(self._documents)

    def __contains__(self, slug):
        return slug in self._documents


class ContentStore:
    """Enumerate, parse and validate the documents under a content directory."""

    def __init__(self, content_dir, include_drafts=False):
        self.content_dir = content_dir
        self.include_drafts = include_drafts
        self.drafts_dir = os.path.join(content_dir, DRAFTS_DIR)

    def get_markdown_files(self):
        """Get all markdown files below the content directory, sorted."""
        markdown_files = []
        for root, dirs, files in os.walk(self.content_dir):
            dirs.sort()
            for name in sorted(files):
                if name.endswith('.md'):
                    markdown_files.append(os.path.join(root, name))
        return markdown_files

    def is_draft(self, path):
        drafts = os.path.abspath(self.drafts_dir) + os.sep
        return os.path.abspath(path).startswith(drafts)

    def parse_document(self, path):
        """Parse and validate a single markdown file into a Document."""
        with open(path, 'r', encoding='utf-8') as f:
            raw = f.read()

        source, body = split_front_matter(raw)
        if source is None:
            raise ValidationError(path, 'front matter', 'missing front matter block')
        try:
            metadata = yaml.safe_load(source) or {}
        except yaml.YAMLError as e:
            raise ValidationError(path, 'front matter', f"invalid YAML front matter: {e}") from e
        if not isinstance(metadata, dict):
            raise ValidationError(path, 'front matter', 'front matter must be a mapping')

        for name in REQUIRED_FIELDS:
            if metadata.get(name) in (None, ''):
                raise ValidationError(path, name)

        title = metadata['title']
        if not isinstance(title, str):
            raise ValidationError(path, 'title', 'title must be a string')

        layout = metadata['layout']
        if layout not in LAYOUTS:
            raise ValidationError(
                path, 'layout',
                f"unknown layout '{layout}' (expected one of: {', '.join(LAYOUTS)})"
            )

        stem = os.path.splitext(os.path.basename(path))[0]
        stem_date = None
        dated = DATED_STEM_RE.match(stem)
        if dated:
            stem_date = parse_date(dated.group(1))
            stem = dated.group(2)

        slug = slugify(metadata.get('slug') or stem)
        if not slug:
            raise ValidationError(path, 'slug', 'slug is empty')

        published = None
        if metadata.get('date') is not None:
            published = parse_date(metadata['date'])
            if published is None:
                raise ValidationError(path, 'date', f"unreadable date '{metadata['date']}'")
        elif stem_date is not None:
            published = stem_date

        return Document(
            path=path,
            slug=slug,
            title=title,
            layout=layout,
            body=body,
            tags=self.normalize_tags(path, metadata.get('tags')),
            date=published,
            draft=self.is_draft(path),
            metadata=metadata,
        )

    def normalize_tags(self, path, tags):
        """Accept a list or comma-separated string; keep first-seen order."""
        if tags is None:
            return ()
        if isinstance(tags, str):
            tags = tags.split(',')
        if not isinstance(tags, (list, tuple, set)):
            raise ValidationError(path, 'tags', 'tags must be a list of strings')
        seen = []
        for tag in tags:
            tag = str(tag).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return tuple(seen)

    def load(self) -> Dict[str, Collection]:
        """Load every document into collections keyed by layout.

        Published documents are added before drafts so that, when drafts
        are included, a draft replaces the published version of its slug.
        """
        if not os.path.isdir(self.content_dir):
            raise FileNotFoundError(f"Content directory not found: {self.content_dir}")

        collections = {layout: Collection(layout) for layout in LAYOUTS}
        drafts: List[Document] = []

        for path in self.get_markdown_files():
            if self.is_draft(path):
                if self.include_drafts:
                    drafts.append(self.parse_document(path))
                else:
                    logger.debug(f"Skipping draft {path}")
                continue
            document = self.parse_document(path)
            collections[document.layout].add(document)

        seen_drafts = {}
        for document in drafts:
            key = (document.layout, document.slug)
            if key in seen_drafts:
                raise DuplicateSlugError(document.path, document.slug, seen_drafts[key])
            seen_drafts[key] = document.path
            collections[document.layout].add(document, supersede=True)

        logger.debug(
            "Loaded " + ', '.join(f"{len(c)} {layout}" for layout, c in collections.items())
        )
        return collections
