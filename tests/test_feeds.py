"""Tests for newsletter.feeds."""

from unittest.mock import Mock, patch

import pytest
import requests

from newsletter.feeds import USER_AGENT, FetchError, _build_session, fetch_all_feeds, fetch_feed_xml
from newsletter.types import SourceFeed

FEED_A = SourceFeed("https://a.test/feed", "Feed A", "DIGITAL SKILLS")
FEED_B = SourceFeed("https://b.test/feed", "Feed B", "STARTUP & FUNDING")
FEED_C = SourceFeed("https://c.test/feed", "Feed C", "AI & INNOVATION")


class TestFetchFeedXml:
    def test_returns_body_on_success(self) -> None:
        session = Mock()
        session.get.return_value = Mock(status_code=200, text="<rss/>")

        assert fetch_feed_xml(FEED_A, timeout=7, session=session) == "<rss/>"
        session.get.assert_called_once_with("https://a.test/feed", timeout=7)

    def test_raises_on_non_2xx(self) -> None:
        session = Mock()
        session.get.return_value = Mock(status_code=503, text="down")

        with pytest.raises(FetchError, match="503"):
            fetch_feed_xml(FEED_A, session=session)

    def test_wraps_transport_errors(self) -> None:
        session = Mock()
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(FetchError, match="refused"):
            fetch_feed_xml(FEED_A, session=session)

    @patch("newsletter.feeds._build_session")
    def test_closes_session_it_creates(self, mock_build_session) -> None:
        session = mock_build_session.return_value
        session.get.side_effect = requests.Timeout("slow")

        with pytest.raises(FetchError):
            fetch_feed_xml(FEED_A)

        session.close.assert_called_once_with()

    def test_leaves_caller_session_open(self) -> None:
        session = Mock()
        session.get.return_value = Mock(status_code=200, text="<rss/>")

        fetch_feed_xml(FEED_A, session=session)

        session.close.assert_not_called()

    def test_session_sends_user_agent(self) -> None:
        assert _build_session().headers["User-Agent"] == USER_AGENT


class TestFetchAllFeeds:
    @patch("newsletter.feeds.fetch_feed_xml")
    def test_failed_feed_contributes_empty_body(self, mock_fetch) -> None:
        def fake_fetch(feed, timeout):
            if feed is FEED_B:
                raise FetchError("boom")
            return f"<rss>{feed.source}</rss>"

        mock_fetch.side_effect = fake_fetch

        result = fetch_all_feeds([FEED_A, FEED_B, FEED_C], timeout=5)

        assert result == [
            (FEED_A, "<rss>Feed A</rss>"),
            (FEED_B, ""),
            (FEED_C, "<rss>Feed C</rss>"),
        ]
        assert mock_fetch.call_count == 3

    @patch("newsletter.feeds.fetch_feed_xml")
    def test_passes_timeout(self, mock_fetch) -> None:
        mock_fetch.return_value = "<rss/>"
        fetch_all_feeds([FEED_A], timeout=9)
        mock_fetch.assert_called_once_with(FEED_A, timeout=9)

    def test_no_feeds(self) -> None:
        assert fetch_all_feeds([]) == []
