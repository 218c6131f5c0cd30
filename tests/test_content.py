"""Tests for the content store."""

import pytest
import os
from datetime import datetime, timedelta, timezone

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from folio.content import ContentStore, Collection, Document, parse_date, slugify, split_front_matter
from folio.errors import ValidationError, DuplicateSlugError


class TestParseDocument:
    """Test cases for parsing a single markdown file."""

    def test_parse_post_with_dated_filename(self, mock_content_dir):
        """Test slug and date are taken from a YYYY-MM-DD- file name."""
        store = ContentStore(mock_content_dir)
        path = os.path.join(mock_content_dir, 'posts', '2023-01-01-part-1-enums.md')

        document = store.parse_document(path)

        assert document.title == 'Part 1: Enums'
        assert document.layout == 'post'
        assert document.slug == 'part-1-enums'
        assert document.date == datetime(2023, 1, 1)
        assert document.tags == ('rust', 'polymorphism')
        assert document.draft is False
        assert document.body.startswith('[TOC]')

    def test_front_matter_date_wins_over_filename(self, write_document, mock_content_dir):
        """Test an explicit date overrides the file name prefix."""
        path = write_document('posts/2020-05-05-dated.md', """---
title: Dated
layout: post
date: 2021-06-07
---
Body
""")
        document = ContentStore(mock_content_dir).parse_document(path)

        assert document.date == datetime(2021, 6, 7)
        assert document.slug == 'dated'

    def test_explicit_slug_is_slugified(self, write_document, mock_content_dir):
        """Test a front matter slug is normalised."""
        path = write_document('pages/about.md', """---
title: About
layout: page
slug: About Me
---
""")
        document = ContentStore(mock_content_dir).parse_document(path)

        assert document.slug == 'about-me'

    def test_missing_title(self, write_document, mock_content_dir):
        """Test a missing title names the field and the file."""
        path = write_document('posts/untitled.md', """---
layout: post
---
Body
""")
        with pytest.raises(ValidationError) as excinfo:
            ContentStore(mock_content_dir).parse_document(path)

        assert excinfo.value.field == 'title'
        assert excinfo.value.path == path
        assert path in str(excinfo.value)
        assert "'title'" in str(excinfo.value)

    def test_missing_layout(self, write_document, mock_content_dir):
        """Test a missing layout is rejected."""
        path = write_document('pages/nolayout.md', """---
title: No layout
---
""")
        with pytest.raises(ValidationError) as excinfo:
            ContentStore(mock_content_dir).parse_document(path)

        assert excinfo.value.field == 'layout'

    def test_unknown_layout(self, write_document, mock_content_dir):
        """Test a layout outside home/page/post is rejected."""
        path = write_document('pages/gallery.md', """---
title: Gallery
layout: gallery
---
""")
        with pytest.raises(ValidationError, match="unknown layout 'gallery'") as excinfo:
            ContentStore(mock_content_dir).parse_document(path)

        assert excinfo.value.field == 'layout'

    def test_missing_front_matter(self, write_document, mock_content_dir):
        """Test a file without a front matter block is rejected."""
        path = write_document('pages/plain.md', "# Just markdown\n")

        with pytest.raises(ValidationError, match='missing front matter') as excinfo:
            ContentStore(mock_content_dir).parse_document(path)

        assert excinfo.value.field == 'front matter'

    def test_invalid_yaml(self, write_document, mock_content_dir):
        """Test malformed YAML front matter is a validation error."""
        path = write_document('pages/broken.md', """---
title: [unclosed
layout: page
---
""")
        with pytest.raises(ValidationError, match='invalid YAML'):
            ContentStore(mock_content_dir).parse_document(path)

    def test_unreadable_date(self, write_document, mock_content_dir):
        """Test a date that cannot be parsed names the date field."""
        path = write_document('posts/when.md', """---
title: When
layout: post
date: sometime soon
---
""")
        with pytest.raises(ValidationError) as excinfo:
            ContentStore(mock_content_dir).parse_document(path)

        assert excinfo.value.field == 'date'

    def test_comma_separated_tags(self, write_document, mock_content_dir):
        """Test tags given as a string are split and de-duplicated."""
        path = write_document('posts/tags.md', """---
title: Tags
layout: post
tags: rust, traits, rust
---
""")
        document = ContentStore(mock_content_dir).parse_document(path)

        assert document.tags == ('rust', 'traits')


class TestLoad:
    """Test cases for loading collections."""

    def test_collections_by_layout(self, mock_content_dir):
        """Test documents are grouped by layout and drafts are left out."""
        collections = ContentStore(mock_content_dir).load()

        assert len(collections['home']) == 1
        assert sorted(d.slug for d in collections['page']) == ['experience', 'projects']
        assert sorted(d.slug for d in collections['post']) == [
            'part-1-enums', 'part-2-traits', 'part-3-generics'
        ]
        assert 'part-4-macros' not in collections['post']

    def test_include_drafts(self, mock_content_dir):
        """Test drafts join their collection when requested."""
        collections = ContentStore(mock_content_dir, include_drafts=True).load()

        draft = collections['post'].get('part-4-macros')
        assert draft is not None
        assert draft.draft is True

    def test_draft_supersedes_published_version(self, write_document, mock_content_dir):
        """Test a draft with a published slug replaces it when drafts are included."""
        write_document('drafts/part-2-traits.md', """---
title: "Part 2: Traits (revised)"
layout: post
date: 2023-02-01
---
Rewritten.
""")
        published = ContentStore(mock_content_dir).load()
        assert published['post'].get('part-2-traits').title == 'Part 2: Traits'

        with_drafts = ContentStore(mock_content_dir, include_drafts=True).load()
        assert with_drafts['post'].get('part-2-traits').title == 'Part 2: Traits (revised)'
        assert len(with_drafts['post']) == 4

    def test_duplicate_slug(self, write_document, mock_content_dir):
        """Test two published documents with one slug are a uniqueness violation."""
        duplicate = write_document('posts/copy.md', """---
title: Copy
layout: post
slug: part-1-enums
---
""")
        with pytest.raises(DuplicateSlugError) as excinfo:
            ContentStore(mock_content_dir).load()

        message = str(excinfo.value)
        assert 'part-1-enums' in message
        assert duplicate in message
        assert excinfo.value.other_path.endswith('2023-01-01-part-1-enums.md')

    def test_duplicate_drafts(self, write_document, mock_content_dir):
        """Test two drafts with one slug are rejected too."""
        write_document('drafts/nested/part-4-macros.md', """---
title: Another macros draft
layout: post
---
""")
        with pytest.raises(DuplicateSlugError):
            ContentStore(mock_content_dir, include_drafts=True).load()

    def test_mixed_timezone_dates(self, write_document, mock_content_dir):
        """Test offset-aware, plain and missing dates sort together."""
        write_document('posts/aware.md', """---
title: Aware
layout: post
date: 2023-01-15T10:00:00+01:00
---
""")
        write_document('posts/undated.md', """---
title: Undated
layout: post
---
""")
        collections = ContentStore(mock_content_dir).load()

        assert collections['post'].get('aware').date == datetime(2023, 1, 15, 9, 0)
        assert [d.slug for d in collections['post'].by_date()] == [
            'part-3-generics', 'part-2-traits', 'aware', 'part-1-enums', 'undated'
        ]

    def test_missing_content_dir(self, temp_dir):
        """Test a missing content directory is reported."""
        with pytest.raises(FileNotFoundError, match='Content directory'):
            ContentStore(os.path.join(temp_dir, 'nope')).load()


class TestCollection:
    """Test cases for the Collection container."""

    def make(self, slug, when):
        return Document(path=f'{slug}.md', slug=slug, title=slug, layout='post', body='', date=when)

    def test_by_date_newest_first(self):
        """Test posts are ordered by publish date descending, ties by slug."""
        collection = Collection('post')
        collection.add(self.make('b', datetime(2023, 1, 1)))
        collection.add(self.make('c', datetime(2024, 1, 1)))
        collection.add(self.make('a', datetime(2023, 1, 1)))
        collection.add(self.make('undated', None))

        assert [d.slug for d in collection.by_date()] == ['c', 'b', 'a', 'undated']

    def test_add_duplicate(self):
        """Test adding a second document with the same slug fails."""
        collection = Collection('page')
        collection.add(self.make('a', None))

        with pytest.raises(DuplicateSlugError):
            collection.add(self.make('a', None))


class TestHelpers:
    """Test cases for module helpers."""

    def test_parse_date_formats(self):
        """Test supported date formats."""
        test_cases = [
            ('2023-01-01', datetime(2023, 1, 1)),
            ('2023-01-01T12:00:00', datetime(2023, 1, 1, 12, 0, 0)),
            ('Jan 01, 2023', datetime(2023, 1, 1)),
        ]
        for date_str, expected in test_cases:
            assert parse_date(date_str) == expected

    def test_parse_date_invalid(self):
        """Test unreadable values give None."""
        assert parse_date('invalid-date') is None
        assert parse_date(None) is None

    def test_parse_date_with_offset(self):
        """Test offset-aware values are converted to naive UTC."""
        aware = datetime(2023, 1, 15, 10, 0, tzinfo=timezone(timedelta(hours=1)))

        assert parse_date(aware) == datetime(2023, 1, 15, 9, 0)
        assert parse_date('2023-01-15T10:00:00+01:00') == datetime(2023, 1, 15, 9, 0)
        assert parse_date('2023-01-15T10:00:00Z') == datetime(2023, 1, 15, 10, 0)

    def test_slugify(self):
        """Test slug generation."""
        assert slugify('Polymorphism with enums') == 'polymorphism-with-enums'
        assert slugify('  Part 1: Enums!  ') == 'part-1-enums'
        assert slugify('snake_case name') == 'snake-case-name'

    def test_split_front_matter(self):
        """Test splitting front matter from the body."""
        source, body = split_front_matter("---\ntitle: A\n---\n\nBody text\n")
        assert source == 'title: A'
        assert body == 'Body text'

        source, body = split_front_matter("No front matter\n---\n")
        assert source is None
