from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ItemClass(str, Enum):
    TEXT = "Text"
    IMAGE = "Image"
    LINK = "Link"
    ATTACHMENT = "Attachment"
    MEDIA = "Media"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: object) -> "ItemClass":
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER


def _nested(data: dict, *keys: str) -> Optional[str]:
    value: object = data
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class ContentItem:
    """One block of channel content.

    Payload fields are only meaningful for the matching ``item_class``; a
    missing payload is rendered as an inline placeholder, never raised.
    """

    id: int
    item_class: ItemClass = ItemClass.OTHER
    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    attachment_url: Optional[str] = None
    embed_html: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "ContentItem":
        return cls(
            id=int(data["id"]),
            item_class=ItemClass.parse(data.get("class")),
            title=data.get("title") or None,
            content=data.get("content") or None,
            description=data.get("description") or None,
            image_url=_nested(data, "image", "display", "url"),
            source_url=_nested(data, "source", "url"),
            attachment_url=_nested(data, "attachment", "url"),
            embed_html=_nested(data, "embed", "html"),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
        )


@dataclass
class Channel:
    title: str
    slug: str = ""
    contents: list[ContentItem] = field(default_factory=list)
    updated_at: str = ""
    length: int = 0

    @classmethod
    def from_api(cls, data: dict, contents: Optional[list[dict]] = None) -> "Channel":
        records = contents if contents is not None else (data.get("contents") or [])
        items = [ContentItem.from_api(record) for record in records]
        return cls(
            title=data.get("title") or "",
            slug=data.get("slug") or "",
            contents=items,
            updated_at=data.get("updated_at") or "",
            length=int(data.get("length") or len(items)),
        )
