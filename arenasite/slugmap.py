from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Iterable, Optional

from .content import slug_source, slugify
from .models import Channel, ContentItem


def slug_for(item: ContentItem) -> str:
    return slugify(slug_source(item), fallback=f"untitled-{item.id}")


def build_slug_map(items: Iterable[ContentItem]) -> dict[str, ContentItem]:
    """Map each item's slug to the item, in source order.

    Two items with the same slug keep only the later one: the earlier item
    still renders on the home page but gets no page of its own.
    """
    slug_map: dict[str, ContentItem] = {}
    for item in items:
        slug = slug_for(item)
        previous = slug_map.get(slug)
        if previous is not None and previous.id != item.id:
            print(
                f"Slug collision on '{slug}': item {item.id} replaces item {previous.id}",
                file=sys.stderr,
            )
        slug_map[slug] = item
    return slug_map


def slug_mappings(items: Iterable[ContentItem]) -> dict[str, dict]:
    mappings = {}
    for item in items:
        mappings[slug_for(item)] = {
            "id": item.id,
            "title": slug_source(item),
            "class": item.item_class.value,
            "original_title": item.title or "",
        }
    return mappings


def save_slug_mappings(channel: Channel, path: Path) -> dict[str, dict]:
    if path.exists():
        path.unlink()
    mappings = slug_mappings(channel.contents)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(mappings, indent=2, ensure_ascii=False), encoding="utf-8")
    return mappings


def load_slug_mappings(path: Path) -> Optional[dict[str, dict]]:
    if not path.exists():
        print(f"No slug mappings file found: {path}", file=sys.stderr)
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Error loading slug mappings from {path}: {exc}", file=sys.stderr)
        return None
    if not isinstance(data, dict):
        print(f"Slug mappings file is not a JSON object: {path}", file=sys.stderr)
        return None
    return data


def id_to_slug(mappings: Optional[dict[str, dict]]) -> dict[int, str]:
    lookup: dict[int, str] = {}
    for slug, entry in (mappings or {}).items():
        try:
            lookup[int(entry["id"])] = slug
        except (KeyError, TypeError, ValueError):
            continue
    return lookup
