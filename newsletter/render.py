"""HTML rendering of the weekly digest email."""
from __future__ import annotations

from datetime import date, datetime
from html import escape
from typing import Optional, Sequence
from urllib.parse import quote

from .types import Article

SITE_NAME = "A Cloud for Everyone"
SITE_URL = "https://acloudforeveryone.org"
COURSES_URL = f"{SITE_URL}/courses"
CONTACT_EMAIL = "contact@acloudforeveryone.org"
GENERIC_GREETING = "Hello Good People!"

_ACCENT = "linear-gradient(135deg, #4A5D23 0%, #6B7B3A 100%)"
# encodeURIComponent leaves these unescaped; tracking links must match it.
_URI_COMPONENT_SAFE = "!~*'()"


def format_long_date(value: date) -> str:
    """``Monday, October 19, 2026``."""
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


def format_short_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def build_subject(brand: str, today: date) -> str:
    return f"{brand} Weekly Digest - {format_long_date(today)}"


def tracking_url(base_url: str, log_id: str, link: str) -> str:
    return (
        f"{base_url}/email-tracking?type=click&logId={quote(str(log_id), safe='')}"
        f"&url={quote(link, safe=_URI_COMPONENT_SAFE)}"
    )


def open_pixel_url(base_url: str, log_id: str) -> str:
    return f"{base_url}/email-tracking?type=open&logId={quote(str(log_id), safe='')}"


def group_by_category(articles: Sequence[Article]) -> dict[str, list[Article]]:
    """Group articles, keeping categories in first-seen order."""
    groups: dict[str, list[Article]] = {}
    for article in articles:
        groups.setdefault(article.category, []).append(article)
    return groups


def _render_article(article: Article, href: str) -> str:
    return f"""
        <tr>
          <td style="padding: 15px 0; border-bottom: 1px solid #E8E4DE;">
            <a href="{escape(href)}" style="text-decoration: none; color: inherit;">
              <h3 style="margin: 0 0 8px 0; font-size: 18px; color: #2D3B0F; font-weight: 600; line-height: 1.4;">{escape(article.title)}</h3>
            </a>
            <p style="margin: 0 0 8px 0; font-size: 14px; color: #5A5A5A; line-height: 1.6;">{escape(article.description)}</p>
            <span style="font-size: 12px; color: #8B8B8B;">{escape(article.source)} &bull; {format_short_date(article.published)}</span>
          </td>
        </tr>"""


def _render_category(category: str, articles: Sequence[Article], base_url: str, log_id: Optional[str]) -> str:
    parts = [
        f"""
        <tr>
          <td style="padding: 20px 0 10px 0;">
            <span style="background: {_ACCENT}; color: white; padding: 6px 14px; border-radius: 20px; font-size: 12px; font-weight: 600; text-transform: uppercase; letter-spacing: 1px;">{escape(category)}</span>
          </td>
        </tr>"""
    ]
    for article in articles:
        href = tracking_url(base_url, log_id, article.link) if log_id is not None else article.link
        parts.append(_render_article(article, href))
    return "".join(parts)


def render_digest(
    articles: Sequence[Article],
    base_url: str,
    log_id: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    """Render the complete newsletter document.

    With ``log_id`` every article link goes through the click tracker and an
    open-tracking pixel is added; without it links point straight at the
    articles and no pixel is emitted.
    """

    today = today or datetime.now().date()
    base_url = base_url.rstrip("/")
    sections = "".join(
        _render_category(category, grouped, base_url, log_id)
        for category, grouped in group_by_category(articles).items()
    )
    pixel = ""
    if log_id is not None:
        pixel = (
            f'<img src="{escape(open_pixel_url(base_url, log_id))}" width="1" height="1" '
            'alt="" style="display:none;" />'
        )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{SITE_NAME} Weekly Newsletter</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F5F3EF; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color: #F5F3EF;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellspacing="0" cellpadding="0" style="background-color: #FFFFFF; border-radius: 12px;">
          <tr>
            <td style="background: {_ACCENT}; padding: 40px 30px; border-radius: 12px 12px 0 0; text-align: center;">
              <h1 style="margin: 0; color: white; font-size: 28px; font-weight: 700;">{SITE_NAME}</h1>
              <p style="margin: 10px 0 0 0; color: rgba(255,255,255,0.9); font-size: 14px;">Weekly Digital Skills &amp; Innovation Digest</p>
            </td>
          </tr>
          <tr>
            <td style="padding: 30px 30px 20px 30px;">
              <h2 style="margin: 0 0 10px 0; color: #2D3B0F; font-size: 24px; font-weight: 600;">{GENERIC_GREETING} &#128075;</h2>
              <p style="margin: 0; color: #5A5A5A; font-size: 15px; line-height: 1.6;">Here's your weekly roundup of the latest in African digital skills, education, and innovation.</p>
              <p style="margin: 10px 0 0 0; color: #8B8B8B; font-size: 13px;">{format_long_date(today)}</p>
            </td>
          </tr>
          <tr>
            <td style="padding: 0 30px;">
              <table role="presentation" width="100%" cellspacing="0" cellpadding="0">{sections}
              </table>
            </td>
          </tr>
          <tr>
            <td style="padding: 30px; text-align: center;">
              <a href="{COURSES_URL}" style="display: inline-block; background: {_ACCENT}; color: white; text-decoration: none; padding: 14px 32px; border-radius: 8px; font-weight: 600; font-size: 15px;">Explore Our Courses</a>
            </td>
          </tr>
          <tr>
            <td style="padding: 20px 30px 30px 30px; border-top: 1px solid #E8E4DE;">
              <p style="margin: 0 0 5px 0; color: #2D3B0F; font-size: 15px; font-weight: 600;">Stay curious, stay learning! &#127757;</p>
              <p style="margin: 0; color: #5A5A5A; font-size: 14px; font-style: italic;">&ndash; Corporate Rasta</p>
            </td>
          </tr>
          <tr>
            <td style="background-color: #F5F3EF; padding: 25px 30px; border-radius: 0 0 12px 12px; text-align: center;">
              <p style="margin: 0 0 10px 0; color: #8B8B8B; font-size: 12px;">{SITE_NAME} | Building Africa's Digital Future</p>
              <p style="margin: 0; color: #8B8B8B; font-size: 12px;">Questions? Contact us at <a href="mailto:{CONTACT_EMAIL}" style="color: #4A5D23;">{CONTACT_EMAIL}</a></p>
              <p style="margin: 15px 0 0 0;"><a href="{SITE_URL}" style="color: #4A5D23; text-decoration: none; font-size: 12px;">Visit Our Website</a></p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
  {pixel}
</body>
</html>
"""


def personalize(document: str, first_name: Optional[str]) -> str:
    """Swap the generic greeting for the recipient's first name, if known."""
    if not first_name or not first_name.strip():
        return document
    return document.replace(GENERIC_GREETING, f"Hello {escape(first_name.strip())}!", 1)
