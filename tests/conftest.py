from pathlib import Path

import pytest

from arenasite.models import Channel, ContentItem, ItemClass

ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def source_dir():
    return ROOT


@pytest.fixture
def templates_dir():
    return ROOT / "views"


@pytest.fixture
def make_item():
    def factory(id=1, item_class=ItemClass.TEXT, **fields):
        fields.setdefault("created_at", "2024-01-01T00:00:00Z")
        fields.setdefault("updated_at", "2024-01-01T00:00:00Z")
        return ContentItem(id=id, item_class=item_class, **fields)

    return factory


@pytest.fixture
def make_channel():
    def factory(items, title="Test Channel"):
        return Channel(title=title, slug="test-channel", contents=list(items), length=len(items))

    return factory
