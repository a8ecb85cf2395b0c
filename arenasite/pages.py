from __future__ import annotations

import datetime as dt
import html
from pathlib import Path
from typing import Optional

from .classify import render_content
from .content import display_title, format_timestamp, nav_title, parse_timestamp
from .description import parse_description, style_attribute
from .models import Channel, ContentItem, ItemClass
from .render import read_template, render_template, write_text
from .slugmap import id_to_slug, load_slug_mappings, slug_for
from .utils import join_url, rfc822_date

OLDEST = dt.datetime.min.replace(tzinfo=dt.timezone.utc)
FEED_CLASSES = {ItemClass.TEXT, ItemClass.LINK}
NOTES_TAG = "notes"


def navigation_links(slug_map: dict[str, ContentItem]) -> str:
    links = "".join(
        f'<li><a href="/{slug}">{html.escape(nav_title(item))}</a></li>'
        for slug, item in slug_map.items()
    )
    return f'<ul class="nav-links">{links}</ul>'


def render_layout(
    templates_dir: Path, channel: Channel, slug_map: dict[str, ContentItem], title: str, content: str
) -> str:
    layout = read_template(templates_dir / "layouts" / "main.html")
    return render_template(
        layout,
        title=html.escape(title),
        channel_title=html.escape(channel.title),
        nav_links=navigation_links(slug_map),
        content=content,
    )


def build_home_block(item: ContentItem) -> dict:
    description = parse_description(item.description or "")
    has_notes_tag = any(tag.lower() == NOTES_TAG for tag in description.tags)
    item_content = render_content(item) if has_notes_tag else ""
    classes = "content-block"
    if description.is_pinned:
        classes += " pinned"
    if has_notes_tag:
        classes += " notes"
    parts = [
        f'<div class="{classes}" data-id="{item.id}"{style_attribute(item.description or "")}>',
        f'<h2><a href="/{slug_for(item)}/">{html.escape(display_title(item))}</a></h2>',
    ]
    if description.html:
        parts.append(f'<div class="item-description">{description.html}</div>')
    if item_content:
        parts.append(f'<div class="item-content">{item_content}</div>')
    parts.append(
        '<div class="item-timestamps">'
        f'<span class="created">Created: {format_timestamp(item.created_at)}</span>'
        f'<span class="updated">Updated: {format_timestamp(item.updated_at)}</span>'
        "</div>"
    )
    parts.append("</div>")
    return {
        "html": "\n".join(parts),
        "pinned": description.is_pinned,
        "created": parse_timestamp(item.created_at) or OLDEST,
    }


def render_home(channel: Channel, slug_map: dict[str, ContentItem], templates_dir: Path) -> str:
    """Render the home page from every item of the channel.

    Items that lost their slug to a later item still get a summary block; its
    link points at the page of the item that kept the slug.
    """
    blocks = [build_home_block(item) for item in channel.contents]
    blocks.sort(key=lambda block: block["created"], reverse=True)
    blocks.sort(key=lambda block: not block["pinned"])
    page = render_template(
        read_template(templates_dir / "pages" / "home.html"),
        channel_title=html.escape(channel.title),
        total_blocks=len(channel.contents),
        blocks="".join(block["html"] for block in blocks),
    )
    return render_layout(templates_dir, channel, slug_map, channel.title, page)


def render_item(
    channel: Channel, item: ContentItem, slug_map: dict[str, ContentItem], templates_dir: Path
) -> str:
    description = parse_description(item.description or "")
    title = display_title(item)
    page = render_template(
        read_template(templates_dir / "pages" / "item.html"),
        channel_title=html.escape(channel.title),
        item_title=html.escape(title),
        item_content=render_content(item),
        item_description=description.html,
        item_id=str(item.id),
        style_attribute=style_attribute(item.description or ""),
        is_pinned="true" if description.is_pinned else "false",
        created_at=format_timestamp(item.created_at),
        updated_at=format_timestamp(item.updated_at),
    )
    return render_layout(templates_dir, channel, slug_map, f"{channel.title} | {title}", page)


def render_404(channel: Channel, slug_map: dict[str, ContentItem], templates_dir: Path) -> str:
    page = read_template(templates_dir / "pages" / "404.html")
    return render_layout(templates_dir, channel, slug_map, f"{channel.title} | Page not found", page)


def cdata(text: str) -> str:
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def render_rss(
    channel: Channel,
    mappings: Optional[dict[str, dict]],
    site_url: str,
    description: str,
    now: Optional[dt.datetime] = None,
) -> str:
    site_url = site_url.rstrip("/")
    lookup = id_to_slug(mappings)
    feed_items = [item for item in channel.contents if item.item_class in FEED_CLASSES]
    feed_items.sort(key=lambda item: parse_timestamp(item.updated_at) or OLDEST, reverse=True)
    entries = []
    for item in feed_items:
        link = html.escape(join_url(site_url, lookup.get(item.id, str(item.id))))
        created = parse_timestamp(item.created_at)
        entries.append(
            "\n".join(
                [
                    "<item>",
                    f"<title>{html.escape(item.title or 'Untitled')}</title>",
                    f"<description>{cdata(item.content or item.description or '')}</description>",
                    f"<link>{link}</link>",
                    f"<pubDate>{rfc822_date(created) if created else ''}</pubDate>",
                    f"<guid>{link}</guid>",
                    "</item>",
                ]
            )
        )
    last_build = rfc822_date(now or dt.datetime.now(dt.timezone.utc))
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0">',
            "<channel>",
            f"<title>{html.escape(channel.title)}</title>",
            f"<description>{html.escape(description)}</description>",
            f"<link>{html.escape(site_url)}</link>",
            f"<lastBuildDate>{last_build}</lastBuildDate>",
            "\n".join(entries),
            "</channel>",
            "</rss>",
        ]
    )


def build_rss(
    channel: Channel, output_dir: Path, slug_map_file: Path, site_url: str, description: str
) -> Optional[Path]:
    if not site_url:
        return None
    # slugs come from the persisted map, never from the in-memory one
    mappings = load_slug_mappings(slug_map_file)
    path = output_dir / "rss.xml"
    write_text(path, render_rss(channel, mappings, site_url, description))
    return path
