"""Tests for newsletter.render."""

from datetime import date, datetime, timezone
from urllib.parse import quote

import pytest
from bs4 import BeautifulSoup

from newsletter.render import (
    GENERIC_GREETING,
    build_subject,
    format_long_date,
    group_by_category,
    open_pixel_url,
    personalize,
    render_digest,
    tracking_url,
)

BASE_URL = "https://project.supabase.co/functions/v1"
TODAY = date(2026, 10, 19)


@pytest.fixture
def articles(make_article):
    return [
        make_article(title="Kenya AI lab opens", link="https://techpoint.africa/ai-lab?ref=rss", category="AI & INNOVATION"),
        make_article(title="Ghana bootcamp", link="https://itnewsafrica.com/bootcamp", category="DIGITAL SKILLS"),
        make_article(title="Seed round closes", link="https://disrupt-africa.com/seed", category="AI & INNOVATION"),
    ]


def _title_hrefs(document: str) -> list[str]:
    soup = BeautifulSoup(document, "html.parser")
    return [h3.find_parent("a")["href"] for h3 in soup.find_all("h3")]


class TestDates:
    def test_long_date(self) -> None:
        assert format_long_date(TODAY) == "Monday, October 19, 2026"

    def test_subject(self) -> None:
        assert build_subject("ACFE", TODAY) == "ACFE Weekly Digest - Monday, October 19, 2026"


class TestGroupByCategory:
    def test_keeps_first_seen_order(self, articles) -> None:
        groups = group_by_category(articles)
        assert list(groups) == ["AI & INNOVATION", "DIGITAL SKILLS"]
        assert [a.title for a in groups["AI & INNOVATION"]] == ["Kenya AI lab opens", "Seed round closes"]


class TestRenderDigest:
    def test_direct_links_without_log_id(self, articles) -> None:
        document = render_digest(articles, BASE_URL, today=TODAY)

        assert _title_hrefs(document) == [
            "https://techpoint.africa/ai-lab?ref=rss",
            "https://disrupt-africa.com/seed",
            "https://itnewsafrica.com/bootcamp",
        ]
        assert BeautifulSoup(document, "html.parser").find("img") is None
        assert "email-tracking" not in document

    def test_tracking_links_with_log_id(self, articles) -> None:
        document = render_digest(articles, BASE_URL, log_id="42", today=TODAY)

        expected = [
            f"{BASE_URL}/email-tracking?type=click&logId=42&url={quote(a.link, safe='')}"
            for a in (articles[0], articles[2], articles[1])
        ]
        assert _title_hrefs(document) == expected

    def test_tracking_pixel_before_body_close(self, articles) -> None:
        document = render_digest(articles, BASE_URL, log_id="42", today=TODAY)
        soup = BeautifulSoup(document, "html.parser")

        [pixel] = soup.find_all("img")
        assert pixel["src"] == f"{BASE_URL}/email-tracking?type=open&logId=42"
        assert pixel["width"] == "1" and pixel["height"] == "1"
        assert document.index("<img") > document.index("Visit Our Website")
        assert document.index("<img") < document.index("</body>")

    def test_sections_follow_category_order(self, articles) -> None:
        document = render_digest(articles, BASE_URL, today=TODAY)
        assert document.index("AI &amp; INNOVATION") < document.index("DIGITAL SKILLS</span>")

    def test_includes_greeting_date_and_byline(self, make_article) -> None:
        article = make_article(published=datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc))
        document = render_digest([article], BASE_URL, today=TODAY)
        text = BeautifulSoup(document, "html.parser").get_text()

        assert GENERIC_GREETING in text
        assert "Monday, October 19, 2026" in text
        assert "TechPoint Africa • 1/2/2024" in text
        assert "Explore Our Courses" in text

    def test_escapes_article_text(self, make_article) -> None:
        document = render_digest([make_article(title="Jobs <now> & later")], BASE_URL, today=TODAY)
        assert "Jobs &lt;now&gt; &amp; later" in document

    def test_no_unresolved_placeholders(self, articles) -> None:
        document = render_digest(articles, BASE_URL, log_id="7", today=TODAY)
        assert "{" not in document and "}" not in document
        assert document.startswith("<!DOCTYPE html>")
        assert document.rstrip().endswith("</html>")


class TestTrackingUrls:
    def test_click_url_encodes_link(self) -> None:
        url = tracking_url(BASE_URL, "9", "https://a.test/x?y=1&z=2")
        assert url == f"{BASE_URL}/email-tracking?type=click&logId=9&url=https%3A%2F%2Fa.test%2Fx%3Fy%3D1%26z%3D2"

    def test_open_url(self) -> None:
        assert open_pixel_url(BASE_URL, "9") == f"{BASE_URL}/email-tracking?type=open&logId=9"


class TestPersonalize:
    def test_substitutes_first_name(self, articles) -> None:
        document = personalize(render_digest(articles, BASE_URL, today=TODAY), "Ada")
        assert "Hello Ada!" in document
        assert GENERIC_GREETING not in document

    def test_escapes_name(self) -> None:
        assert personalize(f"<h2>{GENERIC_GREETING}</h2>", "<Ann>") == "<h2>Hello &lt;Ann&gt;!</h2>"

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_keeps_generic_greeting_without_name(self, name) -> None:
        document = f"<h2>{GENERIC_GREETING}</h2>"
        assert personalize(document, name) == document
