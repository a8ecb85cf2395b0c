"""Tests for the Are.na channel client."""

import urllib.error
from unittest.mock import Mock, patch

import pytest
import requests

from arenasite.arena import ArenaClient, FetchError
from arenasite.config import Settings
from arenasite.models import ItemClass


def block(id, cls="Text", **fields):
    data = {"id": id, "class": cls, "created_at": "2024-01-01T00:00:00Z", "updated_at": "2024-01-02T00:00:00Z"}
    data.update(fields)
    return data


def response(payload):
    resp = Mock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def settings():
    return Settings(channel_slug="my channel", access_token="secret", api_base="https://api.example/v2")


class TestFetchChannel:
    def test_pages_through_contents(self, settings):
        session = Mock()
        session.get.side_effect = [
            response({"title": "Chan", "slug": "chan", "length": 3, "contents": [block(1), block(2)]}),
            response({"contents": [block(3, "Image", image={"display": {"url": "https://img/x.png"}})]}),
        ]
        client = ArenaClient(settings, session=session, per=2)

        channel = client.fetch_channel()

        assert channel.title == "Chan"
        assert [item.id for item in channel.contents] == [1, 2, 3]
        assert channel.contents[2].item_class is ItemClass.IMAGE
        assert channel.contents[2].image_url == "https://img/x.png"
        first_call = session.get.call_args_list[0]
        assert first_call.args[0] == "https://api.example/v2/channels/my%20channel"
        assert first_call.kwargs["params"] == {"per": 2, "page": 1}
        assert first_call.kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_stops_on_empty_page(self, settings):
        session = Mock()
        session.get.side_effect = [
            response({"title": "Chan", "length": 5, "contents": [block(1)]}),
            response({"contents": []}),
        ]

        channel = ArenaClient(settings, session=session, per=1).fetch_channel()

        assert len(channel.contents) == 1

    def test_falls_back_to_urllib(self, settings):
        session = Mock()
        session.get.side_effect = requests.ConnectionError("down")
        client = ArenaClient(settings, session=session)

        with patch.object(
            ArenaClient, "get_with_urllib", return_value={"title": "Chan", "length": 1, "contents": [block(7)]}
        ) as fallback:
            channel = client.fetch_channel()

        fallback.assert_called_once()
        assert channel.contents[0].id == 7

    def test_raises_after_fallback_fails(self, settings):
        session = Mock()
        session.get.side_effect = requests.Timeout("slow")
        client = ArenaClient(settings, session=session)

        with patch.object(ArenaClient, "get_with_urllib", side_effect=urllib.error.URLError("nope")):
            with pytest.raises(FetchError):
                client.fetch_channel()

    def test_malformed_payload_triggers_fallback(self, settings):
        session = Mock()
        session.get.return_value = response({"title": "Chan", "length": 1, "contents": [{"class": "Text"}]})
        client = ArenaClient(settings, session=session)

        with patch.object(ArenaClient, "get_with_urllib", side_effect=ValueError("bad json")):
            with pytest.raises(FetchError):
                client.fetch_channel()

    def test_bad_later_page_triggers_fallback(self, settings):
        session = Mock()
        session.get.side_effect = [
            response({"title": "Chan", "length": 3, "contents": [block(1)]}),
            response(None),
        ]
        client = ArenaClient(settings, session=session, per=1)

        with patch.object(ArenaClient, "get_with_urllib", side_effect=OSError("unreachable")) as fallback:
            with pytest.raises(FetchError):
                client.fetch_channel()

        fallback.assert_called_once()


class TestFetchBlockCount:
    def test_returns_length(self, settings):
        session = Mock()
        session.get.return_value = response({"length": 42, "contents": [block(1)]})

        assert ArenaClient(settings, session=session).fetch_block_count() == 42

    def test_counts_contents_without_length(self, settings):
        session = Mock()
        session.get.return_value = response({"contents": [block(1), block(2)]})

        assert ArenaClient(settings, session=session).fetch_block_count() == 2


class TestModels:
    def test_unknown_class_maps_to_other(self):
        from arenasite.models import ContentItem

        item = ContentItem.from_api(block(1, "Channel", title=None))

        assert item.item_class is ItemClass.OTHER
        assert item.title is None

    def test_payload_fields(self):
        from arenasite.models import ContentItem

        item = ContentItem.from_api(
            block(
                2,
                "Link",
                source={"url": "https://example.com"},
                attachment={"url": "https://files/x.pdf"},
                embed={"html": "<iframe></iframe>"},
            )
        )

        assert item.source_url == "https://example.com"
        assert item.attachment_url == "https://files/x.pdf"
        assert item.embed_html == "<iframe></iframe>"
        assert item.image_url is None
