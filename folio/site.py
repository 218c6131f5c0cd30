"""
Site assembly for Folio.

Loads the content store, assigns every document its route, links the
post series, renders every page in memory and only then replaces the
generated part of the output directory. Any error raised along the way
aborts the build before the output directory is touched.
"""

import os
import re
import shutil
import logging
import calendar
import tempfile
from datetime import datetime
from email.utils import formatdate
from xml.sax.saxutils import escape

from .content import ContentStore, slugify
from .errors import DuplicateSlugError
from .renderer import Renderer, reference_key, relative_root

PACKAGE_TEMPLATES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')
EXCERPT_WORDS = 30
FEED_SIZE = 20
MANIFEST_NAME = '.folio-manifest'


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno == logging.INFO:
            allowed_messages = [
                "Building site",
                "Building blog index",
                "Building tag pages",
                "Generating RSS feed",
                "Generating XML sitemap",
                "Site build completed in",
                "Total posts generated:",
                "Total pages generated:",
                "Serving",
            ]
            return any(msg in record.getMessage() for msg in allowed_messages)
        return True


def generate_excerpt(markdown_text, words=EXCERPT_WORDS):
    """Plain-text excerpt from a markdown body, skipping code, headings and TOC markers."""
    text = re.sub(r'^(```|~~~).*?^\1[ \t]*$', '', markdown_text, flags=re.MULTILINE | re.DOTALL)
    text = re.sub(r'^\s*#.*$', '', text, flags=re.MULTILINE)
    text = re.sub(r'^\s*(\[TOC\]|\{:toc\})\s*$', '', text, flags=re.MULTILINE)
    text = re.sub(r'!?\[([^\]]*)\]\([^)]*\)', r'\1', text)
    text = re.sub(r'<[^>]+>', '', text)
    text = re.sub(r'[*`]', '', text)
    plain = text.split()
    if len(plain) > words:
        return ' '.join(plain[:words]) + '...'
    return ' '.join(plain)


def rfc822_date(value):
    """Timezone-independent RFC 822 date for feeds."""
    return formatdate(calendar.timegm(value.timetuple()), usegmt=True)


class Folio:
    def __init__(self, content_dir='content', templates_dir='templates', output_dir='output',
                 assets_dir=None, blog_slug='blog', site_title=None, site_tagline=None,
                 site_url=None, include_drafts=False, strict_links=True, log_dir=None):
        self.content_dir = content_dir
        self.templates_dir = templates_dir
        self.output_dir = output_dir
        self.assets_dir = assets_dir
        self.blog_slug = blog_slug.strip('/') or 'blog'
        self.site_title = site_title
        self.site_tagline = site_tagline
        self.site_url = site_url.rstrip('/') if site_url else None
        self.include_drafts = include_drafts
        self.strict_links = strict_links
        self.log_dir = log_dir
        self.posts_generated = 0
        self.pages_generated = 0

        # Fall back to the templates shipped with the package
        if not os.path.isabs(self.templates_dir) and not os.path.exists(self.templates_dir):
            self.templates_dir = PACKAGE_TEMPLATES

        self.setup_logging()

        self.store = ContentStore(self.content_dir, include_drafts=include_drafts)
        self.renderer = Renderer(self.templates_dir, strict_links=strict_links)

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Folio')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

        if self.log_dir:
            # File handler for all logs
            os.makedirs(self.log_dir, exist_ok=True)
            log_filename = datetime.now().strftime('folio_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(self.log_dir, log_filename))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(file_handler)

    def assign_routes(self, collections):
        """Map each document's reference key to its output route.

        Routes are relative to the site root and end with a slash; the
        home document lives at the empty route.
        """
        routes = {}
        owners = {}

        def claim(document, route):
            key = reference_key(document)
            if route in owners:
                raise DuplicateSlugError(document.path, document.slug, owners[route])
            if key in routes:
                raise DuplicateSlugError(document.path, document.slug, owners[routes[key]])
            owners[route] = document.path
            routes[key] = route

        if self.assets_dir and os.path.isdir(self.assets_dir):
            owners['assets/'] = 'the assets directory'
        if len(collections['post']):
            owners[f'{self.blog_slug}/'] = 'the blog index'
            if self.has_tag_template():
                owners[f'{self.blog_slug}/tags/'] = 'the tag pages'
            if self.site_url:
                owners['feed/'] = 'the RSS feed'

        for document in collections['home']:
            claim(document, '')
        for document in collections['page']:
            claim(document, f'{document.slug}/')
        for document in collections['post']:
            claim(document, f'{self.blog_slug}/{document.slug}/')

        return routes

    def link_posts(self, posts):
        """Linearise posts oldest first into (previous, next) neighbours keyed by slug."""
        ordered = sorted(posts, key=lambda d: d.sort_key)
        links = {}
        for index, document in enumerate(ordered):
            previous_post = ordered[index - 1] if index > 0 else None
            next_post = ordered[index + 1] if index + 1 < len(ordered) else None
            links[document.slug] = (previous_post, next_post)
        return links

    def post_summary(self, document, routes):
        """Metadata for listing a post on index pages."""
        return {
            'title': document.title,
            'permalink': routes[reference_key(document)],
            'date': self.renderer.format_date(document.date),
            'parsed_date': document.date,
            'tags': list(document.tags),
            'excerpt': document.metadata.get('excerpt') or generate_excerpt(document.body),
            'draft': document.draft,
            'metadata': document.metadata,
        }

    def navigation(self, collections, routes):
        """Static pages for site navigation, ordered by their ``order`` field."""
        pages = sorted(
            collections['page'],
            key=lambda d: (d.metadata.get('order', 1000), d.title.lower())
        )
        return [
            {'title': d.title, 'slug': d.slug, 'permalink': routes[reference_key(d)]}
            for d in pages
        ]

    def group_tags(self, summaries):
        """Group post summaries by tag slug, keeping the first spelling seen."""
        tags = {}
        for post in summaries:
            for tag in post['tags']:
                tag_slug = slugify(tag)
                if not tag_slug:
                    continue
                entry = tags.setdefault(tag_slug, {'name': tag, 'slug': tag_slug, 'posts': []})
                entry['posts'].append(post)
        return dict(sorted(tags.items()))

    def render_site(self, collections, routes):
        """Render every page into a mapping of output path to text."""
        outputs = {}
        posts = collections['post'].by_date()
        series = self.link_posts(posts)
        summaries = [self.post_summary(d, routes) for d in posts]
        tags = self.group_tags(summaries)

        context = {
            'site_title': self.site_title,
            'site_tagline': self.site_tagline,
            'site_url': self.site_url,
            'blog_slug': self.blog_slug,
            'pages': self.navigation(collections, routes),
            'posts': summaries,
            'all_tags': list(tags.values()),
        }

        for layout in ('home', 'page', 'post'):
            for document in collections[layout]:
                route = routes[reference_key(document)]
                previous_post, next_post = series.get(document.slug, (None, None)) if layout == 'post' else (None, None)
                self.logger.debug(f"Rendering {document.path} -> /{route}")
                outputs[os.path.join(route, 'index.html')] = self.renderer.render(
                    document, routes, route,
                    previous_post=previous_post, next_post=next_post,
                    **context
                )
                if layout == 'post':
                    self.posts_generated += 1
                else:
                    self.pages_generated += 1

        if posts:
            outputs.update(self.build_blog_page(context))
            outputs.update(self.build_tag_pages(tags, context))
            if self.site_url:
                outputs['feed/index.xml'] = self.generate_rss_feed(summaries)
        if self.site_url:
            outputs['sitemap.xml'] = self.generate_xml_sitemap(summaries, context['pages'], routes, collections)

        return outputs

    def build_blog_page(self, context):
        """Build the blog archive listing every post, newest first."""
        self.logger.info("Building blog index")
        route = f'{self.blog_slug}/'
        html = self.renderer.render_template(
            'blog',
            title='Blog',
            page={'title': 'Blog'},
            relative_path=relative_root(route),
            **context
        )
        return {os.path.join(route, 'index.html'): html}

    def has_tag_template(self):
        return os.path.exists(os.path.join(self.templates_dir, 'tag.html'))

    def build_tag_pages(self, tags, context):
        """Build one listing page per tag when the templates provide ``tag.html``."""
        if not self.has_tag_template():
            self.logger.debug("Template 'tag.html' not found. Skipping tag pages.")
            return {}

        self.logger.info("Building tag pages")
        outputs = {}
        for tag in tags.values():
            route = f"{self.blog_slug}/tags/{tag['slug']}/"
            outputs[os.path.join(route, 'index.html')] = self.renderer.render_template(
                'tag',
                title=f"Posts tagged {tag['name']}",
                page={'title': tag['name']},
                tag=tag,
                tag_posts=tag['posts'],
                relative_path=relative_root(route),
                **context
            )
        return outputs

    def generate_rss_feed(self, summaries):
        """Generate the RSS feed for the most recent posts."""
        self.logger.info("Generating RSS feed")
        site_name = self.site_title or self.site_url
        dated = [p['parsed_date'] for p in summaries if p['parsed_date']]
        last_build = rfc822_date(max(dated)) if dated else ''

        rss_content = f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>{escape(site_name)}</title>
<link>{escape(self.site_url)}/</link>
<description>Latest posts from {escape(site_name)}</description>
<lastBuildDate>{last_build}</lastBuildDate>
'''
        for post in summaries[:FEED_SIZE]:
            link = f"{self.site_url}/{post['permalink']}"
            pub_date = f"\n<pubDate>{rfc822_date(post['parsed_date'])}</pubDate>" if post['parsed_date'] else ''
            rss_content += f'''
<item>
<title>{escape(post['title'])}</title>
<link>{escape(link)}</link>
<description>{escape(post['excerpt'])}</description>{pub_date}
<guid>{escape(link)}</guid>
</item>'''

        rss_content += '''
</channel>
</rss>
'''
        return rss_content

    def generate_xml_sitemap(self, summaries, pages, routes, collections):
        """Generate the XML sitemap for every published route."""
        self.logger.info("Generating XML sitemap")
        dated = [p['parsed_date'] for p in summaries if p['parsed_date']]
        latest = max(dated) if dated else None

        sitemap_content = '''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
'''
        if len(collections['home']):
            sitemap_content += self.format_xml_sitemap_entry(f'{self.site_url}/', latest)
        if summaries:
            sitemap_content += self.format_xml_sitemap_entry(f'{self.site_url}/{self.blog_slug}/', latest)
        for page in pages:
            document = collections['page'].get(page['slug'])
            sitemap_content += self.format_xml_sitemap_entry(
                f"{self.site_url}/{page['permalink']}", document.date
            )
        for post in summaries:
            sitemap_content += self.format_xml_sitemap_entry(
                f"{self.site_url}/{post['permalink']}", post['parsed_date']
            )
        sitemap_content += '</urlset>\n'
        return sitemap_content

    def format_xml_sitemap_entry(self, url, lastmod):
        """Format a single sitemap entry."""
        entry = f'<url>\n<loc>{escape(url)}</loc>\n'
        if lastmod:
            entry += f"<lastmod>{lastmod.strftime('%Y-%m-%d')}</lastmod>\n"
        return entry + '</url>\n'

    def write_output(self, outputs):
        """Write rendered pages and assets, replacing only what Folio generates.

        Everything is written to a staging directory next to the output
        first; items of the output directory that Folio does not generate
        (CNAME files, version control metadata) are preserved. The
        top-level items of each build are listed in ``MANIFEST_NAME`` so
        that the next build can remove the ones it no longer generates,
        such as retired documents or drafts from a preview build.
        """
        output_dir = os.path.abspath(self.output_dir)
        parent = os.path.dirname(output_dir)
        os.makedirs(parent, exist_ok=True)
        staging = tempfile.mkdtemp(prefix='.folio-', dir=parent)
        try:
            for relative_file in sorted(outputs):
                target = os.path.join(staging, relative_file)
                os.makedirs(os.path.dirname(target), exist_ok=True)
                with open(target, 'w', encoding='utf-8') as f:
                    f.write(outputs[relative_file])
                self.logger.debug(f"Generated {relative_file}")

            self.copy_assets(staging)

            generated = sorted(os.listdir(staging))
            with open(os.path.join(staging, MANIFEST_NAME), 'w', encoding='utf-8') as f:
                f.write(''.join(f'{item}\n' for item in generated))

            os.makedirs(output_dir, exist_ok=True)
            for item in sorted(self.read_manifest(output_dir) - set(generated)):
                self.logger.debug(f"Removing stale {item}")
                self.remove_output_item(os.path.join(output_dir, item))

            for item in sorted(os.listdir(staging)):
                destination = os.path.join(output_dir, item)
                self.remove_output_item(destination)
                shutil.move(os.path.join(staging, item), destination)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def read_manifest(self, output_dir):
        """Top-level items generated by the previous build of ``output_dir``."""
        manifest_path = os.path.join(output_dir, MANIFEST_NAME)
        if not os.path.exists(manifest_path):
            return set()
        with open(manifest_path, 'r', encoding='utf-8') as f:
            names = {line.strip() for line in f}
        # Only plain entry names, never paths leaving the output directory
        return {
            name for name in names
            if name and name not in ('.', '..', MANIFEST_NAME) and os.path.basename(name) == name
        }

    def remove_output_item(self, path):
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        elif os.path.lexists(path):
            os.remove(path)

    def copy_assets(self, destination_root):
        """Copy the assets directory into the output tree."""
        if not self.assets_dir:
            return
        if not os.path.isdir(self.assets_dir):
            self.logger.debug(f"Assets directory {self.assets_dir} not found. Skipping.")
            return
        shutil.copytree(self.assets_dir, os.path.join(destination_root, 'assets'))
        self.logger.debug(f"Copied assets from {self.assets_dir}")

    def build(self):
        """Main build process."""
        self.logger.info("Building site...")
        self.posts_generated = 0
        self.pages_generated = 0

        collections = self.store.load()
        routes = self.assign_routes(collections)
        outputs = self.render_site(collections, routes)
        self.write_output(outputs)
        return sorted(outputs)
