"""Tests for home, item, 404 and RSS rendering."""

import datetime as dt
import json

import pytest

from arenasite.models import ItemClass
from arenasite.pages import (
    build_rss,
    navigation_links,
    render_404,
    render_home,
    render_item,
    render_rss,
)
from arenasite.render import TemplateError
from arenasite.slugmap import build_slug_map, save_slug_mappings


class TestNavigation:
    def test_links_use_slug_and_truncated_title(self, make_item):
        item = make_item(title="A very long title that goes on and on")
        html = navigation_links({"a-very-long": item})

        assert html == (
            '<ul class="nav-links"><li><a href="/a-very-long">A very long title that goes on...</a></li></ul>'
        )

    def test_titles_are_escaped(self, make_item):
        html = navigation_links({"x": make_item(title="<b>")})

        assert "&lt;b&gt;" in html


class TestRenderHome:
    def test_pinned_items_come_first(self, make_item, make_channel, templates_dir):
        a = make_item(id=1, title="A", created_at="2024-01-02T00:00:00Z")
        b = make_item(id=2, title="B", description="pin: top", created_at="2024-01-01T00:00:00Z")
        channel = make_channel([a, b])

        html = render_home(channel, build_slug_map(channel.contents), templates_dir)

        assert html.index('data-id="2"') < html.index('data-id="1"')
        assert 'class="content-block pinned"' in html

    def test_unpinned_sorted_newest_first(self, make_item, make_channel, templates_dir):
        old = make_item(id=1, title="Old", created_at="2023-01-01T00:00:00Z")
        new = make_item(id=2, title="New", created_at="2024-06-01T00:00:00Z")
        channel = make_channel([old, new])

        html = render_home(channel, build_slug_map(channel.contents), templates_dir)

        assert html.index('data-id="2"') < html.index('data-id="1"')

    def test_colliding_items_each_render_a_block(self, make_item, make_channel, templates_dir):
        channel = make_channel([make_item(id=1, title="Notes"), make_item(id=2, title="Notes")])

        html = render_home(channel, build_slug_map(channel.contents), templates_dir)

        assert 'data-id="1"' in html
        assert 'data-id="2"' in html
        assert html.count('<a href="/notes/">Notes</a>') == 2

    def test_block_carries_style_description_and_timestamps(self, make_item, make_channel, templates_dir):
        item = make_item(
            id=3,
            title="Styled",
            description="colour: #eee\ntags: sky\nHello there",
            created_at="2025-05-06T15:30:00Z",
        )
        channel = make_channel([item])

        html = render_home(channel, build_slug_map(channel.contents), templates_dir)

        assert 'style="background-color: #eee;"' in html
        assert '<a href="/#sky" class="tag-link">#sky</a>' in html
        assert "Created: May 6, 2025, 03:30 PM" in html
        assert "<title>Test Channel</title>" in html
        assert "1 blocks" in html

    def test_notes_tag_shows_content_inline(self, make_item, make_channel, templates_dir):
        item = make_item(id=4, title="Memo", content="Inline body", description="tags: notes")
        channel = make_channel([item])

        html = render_home(channel, build_slug_map(channel.contents), templates_dir)

        assert 'class="content-block notes"' in html
        assert '<div class="item-content"><div class="text-content"><p>Inline body</p>' in html

    def test_navigation_is_included(self, make_item, make_channel, templates_dir):
        channel = make_channel([make_item(id=1, title="First")])

        html = render_home(channel, build_slug_map(channel.contents), templates_dir)

        assert '<li><a href="/first">First</a></li>' in html

    def test_missing_templates_raise(self, make_item, make_channel, tmp_path):
        channel = make_channel([make_item()])

        with pytest.raises(TemplateError):
            render_home(channel, {}, tmp_path)


class TestRenderItem:
    def test_item_page(self, make_item, make_channel, templates_dir):
        item = make_item(
            id=8,
            title="Deep Dive",
            content="Some **bold** text",
            description="pin: top\nborder: black\nAbout this",
        )
        channel = make_channel([item])

        html = render_item(channel, item, build_slug_map(channel.contents), templates_dir)

        assert "<title>Test Channel | Deep Dive</title>" in html
        assert "<strong>bold</strong>" in html
        assert "<p>About this</p>" in html
        assert 'data-pinned="true"' in html
        assert 'style="border: 1px solid black;"' in html
        assert 'data-id="8"' in html

    def test_item_page_tolerates_bad_payload(self, make_item, make_channel, templates_dir):
        item = make_item(id=9, item_class=ItemClass.IMAGE, title="Broken")
        channel = make_channel([item])

        html = render_item(channel, item, build_slug_map(channel.contents), templates_dir)

        assert "Image URL not available" in html


class TestRender404:
    def test_not_found_page(self, make_item, make_channel, templates_dir):
        channel = make_channel([make_item(title="Only")])

        html = render_404(channel, build_slug_map(channel.contents), templates_dir)

        assert "<title>Test Channel | Page not found</title>" in html
        assert "does not exist" in html
        assert '<a href="/only">Only</a>' in html


class TestRss:
    def test_only_text_and_link_sorted_by_update(self, make_item, make_channel):
        older = make_item(id=1, title="Older", updated_at="2024-01-01T00:00:00Z")
        newer = make_item(id=2, title="Newer", item_class=ItemClass.LINK, updated_at="2024-05-01T00:00:00Z")
        image = make_item(id=3, title="Picture", item_class=ItemClass.IMAGE)
        channel = make_channel([older, newer, image])
        mappings = {"older": {"id": 1}, "newer": {"id": 2}}

        xml = render_rss(channel, mappings, "https://site.example/", "desc", now=dt.datetime(2024, 6, 1))

        assert xml.index("Newer") < xml.index("Older")
        assert "Picture" not in xml
        assert "<link>https://site.example/newer</link>" in xml
        assert "<lastBuildDate>Sat, 01 Jun 2024 00:00:00 +0000</lastBuildDate>" in xml

    def test_unmapped_item_uses_id(self, make_item, make_channel):
        channel = make_channel([make_item(id=77, title="Lost")])

        xml = render_rss(channel, None, "https://site.example", "desc")

        assert "<link>https://site.example/77</link>" in xml

    def test_site_url_is_xml_escaped(self, make_item, make_channel):
        channel = make_channel([make_item(id=5, title="Amp")])

        xml = render_rss(channel, {"amp": {"id": 5}}, "https://site.example/?a=1&b=2", "desc")

        assert "<link>https://site.example/?a=1&amp;b=2</link>" in xml
        assert "<guid>https://site.example/?a=1&amp;b=2/amp</guid>" in xml
        assert "&b=" not in xml

    def test_content_is_wrapped_in_cdata(self, make_item, make_channel):
        channel = make_channel([make_item(id=1, content="a ]]> b")])

        xml = render_rss(channel, None, "https://site.example", "desc")

        assert "<description><![CDATA[a ]]]]><![CDATA[> b]]></description>" in xml
        assert "<title>Untitled</title>" in xml

    def test_build_rss_reads_persisted_slug_map(self, tmp_path, make_item, make_channel):
        channel = make_channel([make_item(id=1, title="Persisted Title")])
        slug_file = tmp_path / "slug-mappings.json"
        save_slug_mappings(channel, slug_file)
        data = json.loads(slug_file.read_text(encoding="utf-8"))
        slug_file.write_text(json.dumps({"renamed": data["persisted-title"]}), encoding="utf-8")

        path = build_rss(channel, tmp_path, slug_file, "https://site.example", "desc")

        assert "<link>https://site.example/renamed</link>" in path.read_text(encoding="utf-8")

    def test_build_rss_without_site_url(self, tmp_path, make_item, make_channel):
        assert build_rss(make_channel([make_item()]), tmp_path, tmp_path / "s.json", "", "d") is None
        assert not (tmp_path / "rss.xml").exists()
