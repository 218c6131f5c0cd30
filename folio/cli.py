#!/usr/bin/env python3
"""
Command-line interface for Folio - portfolio and blog site builder.
"""

import os
import sys
import time
import shutil
import argparse

from . import __version__
from .errors import FolioError
from .server import serve
from .settings import FolioSettings
from .site import Folio, PACKAGE_TEMPLATES

SAMPLE_CONTENT = {
    'index.md': """---
title: "Home"
layout: home
slug: home
---

# Hi, I'm a software engineer

I write about systems programming. Have a look at my
[experience](page:experience), my [projects](page:projects) or the blog.
""",
    'experience.md': """---
title: "Experience"
layout: page
order: 1
---

## Senior Engineer

Building developer tooling.
""",
    'projects.md': """---
title: "Projects"
layout: page
order: 2
---

## Folio

The static site generator behind this website.
""",
    'posts/2024-01-10-polymorphism-with-enums.md': """---
title: "Part 1: Enums"
layout: post
tags: [rust, polymorphism]
---

[TOC]

## Polymorphism with enums

An enum lists every variant up front, so a `match` is checked for exhaustiveness.

```rust
enum Shape {
    Circle(f64),
    Square(f64),
}
```

Next up: [trait objects](post:polymorphism-with-traits).
""",
    'posts/2024-02-14-polymorphism-with-traits.md': """---
title: "Part 2: Trait objects"
layout: post
tags: [rust, polymorphism]
---

[TOC]

## Polymorphism with trait objects

Trait objects trade exhaustiveness for an open set of types.

Part 3 is coming soon: [generics](TODO).
""",
    'drafts/polymorphism-with-generics.md': """---
title: "Part 3: Generics"
layout: post
tags: [rust, polymorphism]
---

Monomorphisation, and when it beats dynamic dispatch.
""",
}


def create_starter_structure() -> None:
    """Create starter structure with templates and sample content."""
    current_dir = os.getcwd()

    for directory in ['templates', 'content/posts', 'content/drafts', 'assets/css']:
        dir_path = os.path.join(current_dir, directory)
        if os.path.exists(dir_path):
            print(f"Directory already exists: {directory}")
        else:
            os.makedirs(dir_path, exist_ok=True)
            print(f"Created directory: {directory}")

    template_dest = os.path.join(current_dir, 'templates')
    for template_file in sorted(os.listdir(PACKAGE_TEMPLATES)):
        if template_file.endswith('.html'):
            dest_path = os.path.join(template_dest, template_file)
            if os.path.exists(dest_path):
                print(f"Template already exists: templates/{template_file}")
            else:
                shutil.copy2(os.path.join(PACKAGE_TEMPLATES, template_file), dest_path)
                print(f"Created template: templates/{template_file}")

    for relative_path, text in SAMPLE_CONTENT.items():
        path = os.path.join(current_dir, 'content', relative_path)
        if os.path.exists(path):
            print(f"Content already exists: content/{relative_path}")
        else:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(text)
            print(f"Created content: content/{relative_path}")

    css_path = os.path.join(current_dir, 'assets', 'css', 'main.css')
    if not os.path.exists(css_path):
        with open(css_path, 'w', encoding='utf-8') as f:
            f.write("body { max-width: 48rem; margin: 0 auto; font-family: sans-serif; }\n"
                    ".pending-link { color: inherit; text-decoration: line-through; cursor: not-allowed; }\n")
        print("Created stylesheet: assets/css/main.css")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Folio - portfolio and blog site builder')
    parser.add_argument('--output', type=str,
                        help='Output directory for generated site')
    parser.add_argument('--content', type=str,
                        help='Content directory containing markdown files')
    parser.add_argument('--templates', type=str,
                        help='Templates directory')
    parser.add_argument('--assets', type=str,
                        help='Assets directory to copy to output')
    parser.add_argument('--blog-slug', type=str,
                        help="Custom slug for posts instead of 'blog'")
    parser.add_argument('--site-title', type=str, help='Site title for metadata')
    parser.add_argument('--site-tagline', type=str, help='Site tagline for metadata')
    parser.add_argument('--site-url', type=str,
                        help='Site URL for RSS feeds and sitemaps')
    parser.add_argument('--drafts', action='store_true', default=None,
                        help='Include documents from content/drafts')
    parser.add_argument('--lenient-links', dest='strict_links', action='store_false', default=None,
                        help='Render links to missing documents inert instead of failing')
    parser.add_argument('--serve', action='store_true',
                        help='Serve the built site locally for preview')
    parser.add_argument('--port', type=int,
                        help='Port for the preview server')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file and starter site')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.init:
        settings_loader = FolioSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")

        print("\nCreating starter project structure...")
        create_starter_structure()

        print("\nYour new Folio site is ready!")
        print("Run 'folio --serve --drafts' to preview it.")
        return

    settings_loader = FolioSettings()
    settings_loader.load_settings()

    args_dict = {k: v for k, v in vars(args).items() if v is not None}
    final_settings = settings_loader.merge_with_args(args_dict)

    output_dir = os.path.expanduser(final_settings['output'])
    overall_start_time = time.time()

    try:
        generator = Folio(
            content_dir=final_settings['content'],
            templates_dir=final_settings['templates'],
            output_dir=output_dir,
            assets_dir=final_settings['assets'],
            blog_slug=final_settings['blog_slug'],
            site_title=final_settings['site_title'],
            site_tagline=final_settings['site_tagline'],
            site_url=final_settings['site_url'],
            include_drafts=final_settings['drafts'],
            strict_links=final_settings['strict_links'],
            log_dir=final_settings['log_dir'],
        )
        generator.build()

        total_time = time.time() - overall_start_time
        generator.logger.info(f"Site build completed in {total_time:.6f} seconds.")
        generator.logger.info(f"Total posts generated: {generator.posts_generated}")
        generator.logger.info(f"Total pages generated: {generator.pages_generated}")
    except (FolioError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.serve:
        serve(output_dir, port=final_settings['port'])


if __name__ == '__main__':
    main()
