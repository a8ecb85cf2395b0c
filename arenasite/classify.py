from __future__ import annotations

import html
import json
import sys
from dataclasses import dataclass
from typing import Optional, Union

from .content import normalize_list_spacing, promote_headlines
from .description import description_prose
from .markup import render_markdown
from .models import ContentItem, ItemClass
from .render import add_target_blank


@dataclass
class StructuredText:
    blocks: list[dict]


@dataclass
class PlainText:
    text: str


TextBody = Union[StructuredText, PlainText]


def parse_text_blocks(content: Optional[str]) -> TextBody:
    """Read Text content as a JSON list of typed blocks, else as plain markdown."""
    text = content or ""
    if not text.lstrip().startswith("["):
        return PlainText(text)
    try:
        data = json.loads(text)
    except ValueError:
        return PlainText(text)
    if not isinstance(data, list) or not data:
        return PlainText(text)
    if not all(isinstance(block, dict) and "type" in block for block in data):
        return PlainText(text)
    return StructuredText(data)


def render_markdown_text(text: str) -> str:
    return render_markdown(normalize_list_spacing(promote_headlines(text)))


def render_block(block: dict) -> str:
    payload = block.get("content")
    if not isinstance(payload, dict):
        return ""
    if block.get("type") == "text" and payload.get("text"):
        return render_markdown_text(str(payload["text"]))
    if block.get("type") == "image" and payload.get("src"):
        src = html.escape(str(payload["src"]))
        alt = html.escape(str(payload.get("alt") or ""))
        caption = ""
        if payload.get("caption"):
            caption = f"<figcaption>{html.escape(str(payload['caption']))}</figcaption>"
        return f'<figure><img src="{src}" alt="{alt}" />{caption}</figure>'
    return ""


def render_text(item: ContentItem) -> str:
    body = parse_text_blocks(item.content)
    if isinstance(body, StructuredText):
        rendered = "\n".join(render_block(block) for block in body.blocks)
        return f'<div class="structured-content">{rendered}</div>'
    return f'<div class="text-content">{render_markdown_text(body.text)}</div>'


def render_image(item: ContentItem) -> str:
    if not item.image_url:
        return '<div class="error">Image URL not available</div>'
    alt = html.escape(item.title or "Arena image")
    return f'<img src="{html.escape(item.image_url)}" alt="{alt}" class="item-image" />'


def render_link(item: ContentItem) -> str:
    href = html.escape(item.source_url or "#")
    label = html.escape(item.title or item.source_url or "Untitled Link")
    parts = [
        '<div class="link-content">',
        f'<h3><a href="{href}">{label}</a></h3>',
    ]
    prose = description_prose(item.description or "")
    if prose:
        parts.append(f'<div class="description">{render_markdown(normalize_list_spacing(prose))}</div>')
    if item.image_url:
        alt = html.escape(item.title or "Link preview")
        parts.append(f'<img src="{html.escape(item.image_url)}" alt="{alt}" />')
    parts.append("</div>")
    return "".join(parts)


def render_attachment(item: ContentItem) -> str:
    if not item.attachment_url:
        return '<div class="error">Attachment not available</div>'
    return (
        '<div class="attachment-content">'
        f"<h3>{html.escape(item.title or 'Attachment')}</h3>"
        f'<a href="{html.escape(item.attachment_url)}" class="download-link" download>'
        "Download Attachment</a>"
        "</div>"
    )


def render_media(item: ContentItem) -> str:
    if not item.embed_html:
        return '<div class="error">Media embed not available</div>'
    return f'<div class="media-embed">{item.embed_html}</div>'


def render_generic(item: ContentItem) -> str:
    parts = ['<div class="generic-content">']
    if item.title:
        parts.append(f"<h3>{html.escape(item.title)}</h3>")
    if item.content:
        parts.append(f'<div class="content">{item.content}</div>')
    if item.description:
        parts.append(f'<div class="description">{item.description}</div>')
    parts.append("</div>")
    return "".join(parts)


RENDERERS = {
    ItemClass.TEXT: render_text,
    ItemClass.IMAGE: render_image,
    ItemClass.LINK: render_link,
    ItemClass.ATTACHMENT: render_attachment,
    ItemClass.MEDIA: render_media,
}


def render_content(item: ContentItem) -> str:
    """Render one item's body as an HTML fragment.

    Never raises: a failure inside a renderer becomes a visible error block so
    one bad item cannot stop the build.
    """
    renderer = RENDERERS.get(item.item_class, render_generic)
    try:
        return add_target_blank(renderer(item))
    except Exception as exc:
        print(f"Error processing content for item {item.id}: {exc}", file=sys.stderr)
        return f'<div class="error">Error processing content: {html.escape(str(exc))}</div>'
