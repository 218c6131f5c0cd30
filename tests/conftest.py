"""Test configuration and fixtures for Folio tests."""

import pytest
import tempfile
import shutil
import os
from pathlib import Path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def mock_content_dir(temp_dir):
    """Create a mock content directory: home, two pages, three posts and a draft."""
    content_dir = Path(temp_dir) / 'content'
    posts_dir = content_dir / 'posts'
    pages_dir = content_dir / 'pages'
    drafts_dir = content_dir / 'drafts'

    for directory in (posts_dir, pages_dir, drafts_dir):
        directory.mkdir(parents=True)

    (content_dir / 'index.md').write_text("""---
title: Home
layout: home
---

Welcome. See my [experience](page:experience).
""")

    (pages_dir / 'experience.md').write_text("""---
title: Experience
layout: page
order: 1
---

## Senior Engineer

Back to [home](page:index).
""")

    (pages_dir / 'projects.md').write_text("""---
title: Projects
layout: page
order: 2
---

## Folio
""")

    (posts_dir / '2023-01-01-part-1-enums.md').write_text("""---
title: "Part 1: Enums"
layout: post
tags: [rust, polymorphism]
---

[TOC]

## Polymorphism with enums

Enums are closed sets of variants.

```rust
enum Shape { Circle(f64), Square(f64) }
```

Continue with [part 2](post:part-2-traits).
""")

    (posts_dir / '2023-02-01-part-2-traits.md').write_text("""---
title: "Part 2: Traits"
layout: post
tags: [rust]
---

## Trait objects

See [the next part](TODO).
""")

    (posts_dir / '2023-03-01-part-3-generics.md').write_text("""---
title: "Part 3: Generics"
layout: post
tags: [rust, generics]
---

## Monomorphisation
""")

    (drafts_dir / 'part-4-macros.md').write_text("""---
title: "Part 4: Macros"
layout: post
date: 2023-04-01
tags: [rust]
---

Still writing this one.
""")

    return str(content_dir)


@pytest.fixture
def mock_templates_dir(temp_dir):
    """Create a mock templates directory with every layout."""
    templates_dir = Path(temp_dir) / 'templates'
    templates_dir.mkdir()

    (templates_dir / 'base.html').write_text("""<!DOCTYPE html>
<html>
<head>
    <title>{{ title }}</title>
</head>
<body>
    {% block content %}{% endblock %}
</body>
</html>""")

    (templates_dir / 'home.html').write_text("""{% extends "base.html" %}
{% block content %}
<div class="home">{{ content|safe }}</div>
{% for post in posts %}<a href="{{ relative_path }}{{ post.permalink }}">{{ post.title }}</a>{% endfor %}
{% endblock %}""")

    (templates_dir / 'page.html').write_text("""{% extends "base.html" %}
{% block content %}
<div>
    <h1>{{ title }}</h1>
    <div>{{ content|safe }}</div>
</div>
{% endblock %}""")

    (templates_dir / 'post.html').write_text("""{% extends "base.html" %}
{% block content %}
<article>
    <h1>{{ title }}</h1>
    <div>{{ content|safe }}</div>
    {% if previous %}<a class="previous" href="{{ previous.url }}">{{ previous.title }}</a>{% endif %}
    {% if next %}<a class="next" href="{{ next.url }}">{{ next.title }}</a>{% endif %}
</article>
{% endblock %}""")

    (templates_dir / 'blog.html').write_text("""{% extends "base.html" %}
{% block content %}
<div>
    {% for post in posts %}
    <article>
        <h2><a href="{{ relative_path }}{{ post.permalink }}">{{ post.title }}</a></h2>
        <p>{{ post.excerpt }}</p>
    </article>
    {% endfor %}
</div>
{% endblock %}""")

    (templates_dir / 'tag.html').write_text("""{% extends "base.html" %}
{% block content %}
<h1>{{ tag.name }}</h1>
{% for post in tag_posts %}<a href="{{ relative_path }}{{ post.permalink }}">{{ post.title }}</a>{% endfor %}
{% endblock %}""")

    return str(templates_dir)


@pytest.fixture
def mock_output_dir(temp_dir):
    """Create a mock output directory."""
    output_dir = Path(temp_dir) / 'output'
    output_dir.mkdir()
    return str(output_dir)


@pytest.fixture
def write_document(mock_content_dir):
    """Write an extra markdown file below the mock content directory."""
    def _write(relative_path, text):
        path = os.path.join(mock_content_dir, relative_path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        return path
    return _write
