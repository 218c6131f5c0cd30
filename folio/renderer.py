"""
Markdown to HTML rendering for Folio documents.

Bodies are converted with mistune. A custom renderer assigns anchor ids
to headings, expands the ``[TOC]`` directive into an outline of those
headings, resolves ``post:``/``page:`` cross-references and leaves code
blocks untouched apart from escaping. The resulting fragment is then
wrapped in the Jinja2 template named after the document's layout.
"""

import html
import logging
import re
from typing import List, NamedTuple, Optional

import mistune
from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from .content import slugify
from .errors import BrokenReferenceError, LayoutNotFoundError

TOC_MARKERS = ('[TOC]', '{:toc}')
TOC_PLACEHOLDER = '<!-- folio:toc -->'
REFERENCE_KINDS = ('post', 'page')
PENDING_TARGETS = ('', 'todo', '#todo', '#')
DATE_DISPLAY_FORMAT = '%B %d, %Y'

TAG_RE = re.compile(r'<[^>]+>')

logger = logging.getLogger('Folio.renderer')


class TocEntry(NamedTuple):
    level: int
    anchor: str
    text: str


class RenderedBody(NamedTuple):
    html: str
    toc: List[TocEntry]


def reference_key(document):
    """Key under which a document is addressed by cross-references."""
    kind = 'post' if document.layout == 'post' else 'page'
    return (kind, document.slug)


def relative_root(route):
    """Path prefix leading from a route's directory back to the site root."""
    return '../' * route.count('/')


def link_between(from_route, to_route):
    """Relative href from one route to another."""
    return (relative_root(from_route) + to_route) or './'


def render_toc(entries):
    """Render TOC entries as a nested list following heading levels."""
    if not entries:
        return ''
    parts = ['<nav class="toc">']
    stack = []
    for entry in entries:
        if not stack or entry.level > stack[-1]:
            parts.append('<ul>')
            stack.append(entry.level)
        else:
            parts.append('</li>')
            while len(stack) > 1 and entry.level <= stack[-2]:
                parts.append('</ul></li>')
                stack.pop()
            stack[-1] = entry.level
        parts.append(f'<li><a href="#{entry.anchor}">{entry.text}</a>')
    parts.append('</li>')
    while stack:
        parts.append('</ul>')
        stack.pop()
        if stack:
            parts.append('</li>')
    parts.append('</nav>')
    return ''.join(parts)


class DocumentRenderer(mistune.HTMLRenderer):
    """HTML renderer holding the per-document state of one render."""

    def __init__(self, document, routes, route, strict_links=True):
        super().__init__(escape=False)
        self.document = document
        self.routes = routes
        self.route = route
        self.strict_links = strict_links
        self.headings = []
        self._anchors = {}
        self._used_anchors = set()

    def _unique_anchor(self, text):
        base = slugify(html.unescape(text)) or 'section'
        count = self._anchors.get(base, 0)
        anchor = base if count == 0 else f'{base}-{count}'
        while anchor in self._used_anchors:
            count += 1
            anchor = f'{base}-{count}'
        self._anchors[base] = count + 1
        self._used_anchors.add(anchor)
        return anchor

    def heading(self, text, level, **attrs):
        plain = TAG_RE.sub('', text).strip()
        anchor = attrs.get('id') or self._unique_anchor(plain)
        self.headings.append(TocEntry(level, anchor, plain))
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def paragraph(self, text):
        if text.strip() in TOC_MARKERS:
            return TOC_PLACEHOLDER + '\n'
        return f'<p>{text}</p>\n'

    def block_code(self, code, info=None):
        lang = info.strip().split(None, 1)[0] if info and info.strip() else None
        escaped_code = mistune.escape(code)
        if lang:
            return f'<pre><code class="language-{mistune.escape(lang)}">{escaped_code}</code></pre>\n'
        return f'<pre><code>{escaped_code}</code></pre>\n'

    def pending_link(self, text):
        return f'<a class="pending-link" aria-disabled="true" title="Link not yet assigned">{text}</a>'

    def link(self, text, url, title=None):
        target = (url or '').strip()
        if target.lower() in PENDING_TARGETS:
            return self.pending_link(text)

        kind, _, slug = target.partition(':')
        if kind in REFERENCE_KINDS and slug:
            fragment = ''
            if '#' in slug:
                slug, fragment = slug.split('#', 1)
                fragment = '#' + fragment
            resolved = self.routes.get((kind, slug))
            if resolved is None:
                if self.strict_links:
                    raise BrokenReferenceError(self.document.path, target)
                logger.warning(f"{self.document.path}: unresolved reference '{target}' rendered inert")
                return self.pending_link(text)
            target = link_between(self.route, resolved) + fragment

        return super().link(text, target, title)


class Renderer:
    """Render documents into complete HTML pages."""

    def __init__(self, templates_dir, strict_links=True):
        self.templates_dir = templates_dir
        self.strict_links = strict_links
        self.env = Environment(loader=FileSystemLoader(templates_dir))
        self.env.filters['format_date'] = self.format_date
        self.env.filters['slugify'] = slugify

    @staticmethod
    def format_date(value):
        """Format a publish date for display; missing dates render empty."""
        if value is None:
            return ''
        return value.strftime(DATE_DISPLAY_FORMAT)

    def create_markdown_parser(self, renderer):
        """Create a Mistune markdown parser around a document renderer."""
        return mistune.create_markdown(
            renderer=renderer,
            plugins=['table', 'task_lists', 'strikethrough']
        )

    def render_body(self, document, routes, route) -> RenderedBody:
        """Convert a document body to HTML, expanding any TOC directive."""
        renderer = DocumentRenderer(document, routes, route, strict_links=self.strict_links)
        body_html = self.create_markdown_parser(renderer)(document.body)
        if TOC_PLACEHOLDER in body_html:
            body_html = body_html.replace(TOC_PLACEHOLDER, render_toc(renderer.headings))
        return RenderedBody(body_html, renderer.headings)

    def get_layout(self, layout, path=None):
        try:
            return self.env.get_template(f'{layout}.html')
        except TemplateNotFound as e:
            raise LayoutNotFoundError(layout, path) from e

    def render_template(self, template_name, **context):
        """Render a site-level template such as the blog index."""
        return self.get_layout(template_name).render(**context)

    def render(self, document, routes, route, previous_post=None, next_post=None, **context) -> str:
        """Render a document through its layout template.

        ``previous_post`` and ``next_post`` are neighbouring Documents in the post
        series (or None); they are passed to the template as title/url
        mappings relative to this document's route.
        """
        template = self.get_layout(document.layout, document.path)
        body = self.render_body(document, routes, route)
        return template.render(
            content=body.html,
            toc=body.toc,
            title=document.title,
            date=self.format_date(document.date),
            tags=list(document.tags),
            page=document.metadata,
            metadata=document.metadata,
            slug=document.slug,
            draft=document.draft,
            relative_path=relative_root(route),
            previous=self.neighbour(previous_post, routes, route),
            next=self.neighbour(next_post, routes, route),
            **context
        )

    def neighbour(self, document, routes, route) -> Optional[dict]:
        if document is None:
            return None
        target = routes[reference_key(document)]
        return {'title': document.title, 'url': link_between(route, target)}

