"""Signal extraction from marketing-page HTML.

Tolerant, best-effort extraction: BeautifulSoup for structural queries
(title, headings, meta tags, links, images) and regular expressions for
text scans (emails, careers and launch language). Nothing here raises on
malformed HTML; missing data yields empty values.
"""

import html as html_lib
import logging
import re
from datetime import datetime, timezone
from typing import Optional, Sequence

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 200
VALUE_PROP_MAX_CHARS = 120
MAX_EMAILS = 5

EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)

# Literal JSON/JS escape sequences seen in inlined page state
_ESCAPES = re.compile(r"\\?u00(3c|3e|26|22|27)", re.IGNORECASE)
_ESCAPE_CHARS = {"3c": "<", "3e": ">", "26": "&", "22": '"', "27": "'"}

# Role, placeholder and example addresses
EMAIL_BLOCKLIST = (
    "noreply@", "no-reply@", "donotreply@", "do-not-reply@",
    "you@example.com", "your@email.com", "email@domain.com",
    "test@example.com", "user@example.com", "name@example.com",
    "@example.com", "example@", "test@test.com", "email@email.com",
    "info@", "admin@", "webmaster@", "postmaster@",
)

_IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".avif")

_TEAM_PREFIXES = ("hello@", "team@")
_SUPPORT_PREFIXES = ("support@", "contact@")

_CAREERS_RE = re.compile(r"\b(careers|jobs|hiring|join us|we're hiring)\b", re.IGNORECASE)
_LAUNCH_LANGUAGE_RE = re.compile(r"\b(launching|just launched|announcing)\b", re.IGNORECASE)
_BETA_LANGUAGE_RE = re.compile(r"\b(beta|early access|coming soon)\b", re.IGNORECASE)
_BETA_CONTEXT_RE = re.compile(r"\b(beta|early access)\b", re.IGNORECASE)

# (label, href substrings) for hosted messaging and scheduling links
_LINK_CHANNELS = (
    ("discord", ("discord.gg", "discord.com/invite")),
    ("slack", ("slack.com",)),
    ("calendly", ("calendly.com",)),
    ("cal", ("//cal.com/", ".cal.com/")),
)

# (label, page-source signature) for embedded chat widgets
_WIDGET_SIGNATURES = (
    ("intercom", "intercom"),
    ("crisp", "client.crisp.chat"),
    ("drift", "js.driftt.com"),
)


def make_soup(html: str) -> BeautifulSoup:
    """Parse HTML with the lxml parser."""
    return BeautifulSoup(html or "", "lxml")


def visible_text(html: str) -> str:
    """Extract normalized page text, dropping script and style content.

    Navigation and footer text is kept: links such as "Pricing" or "Docs"
    are scoring signals.
    """
    soup = make_soup(html)
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    return soup.get_text(separator=" ", strip=True)


def extract_title(soup: BeautifulSoup) -> str:
    """Trimmed <title> text, capped in length."""
    tag = soup.find("title")
    if tag is None:
        return ""
    return tag.get_text().strip()[:TITLE_MAX_CHARS]


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    """Content attribute of the first matching <meta> tag."""
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    return (tag.get("content") or "").strip()


def extract_value_prop(soup: BeautifulSoup) -> str:
    """Best one-line description of what the product does.

    Preference: first <h1>, meta description, og:description, then the
    first paragraph of reasonable length. Candidates shorter than 10
    characters fall through to the next source.
    """
    value_prop = ""
    h1 = soup.find("h1")
    if h1 is not None:
        value_prop = h1.get_text(" ", strip=True)

    if len(value_prop) < 10:
        value_prop = _meta_content(soup, name="description")
    if len(value_prop) < 10:
        value_prop = _meta_content(soup, property="og:description")
    if len(value_prop) < 10:
        for p in soup.find_all("p"):
            text = p.get_text(" ", strip=True)
            if 20 < len(text) < 200:
                value_prop = text
                break

    return value_prop[:VALUE_PROP_MAX_CHARS].strip()


def decode_entities(text: str) -> str:
    """Decode HTML entities and literal \\u003c-style escapes."""
    text = _ESCAPES.sub(lambda m: _ESCAPE_CHARS[m.group(1).lower()], text or "")
    return html_lib.unescape(text)


def email_rank(email: str) -> int:
    """Confidence rank of an address: personal 4, hello/team 3, support/contact 2."""
    lower = email.lower()
    if any(p in lower for p in _SUPPORT_PREFIXES):
        return 2
    if any(p in lower for p in _TEAM_PREFIXES):
        return 3
    return 4


def email_confidence(emails: Sequence[str]) -> str:
    """Confidence label for a lead from its top-ranked email."""
    if not emails:
        return "none"
    return "high" if email_rank(emails[0]) >= 3 else "medium"


def is_blocked_email(email: str) -> bool:
    """Whether an address is a placeholder, role account or image filename."""
    lower = email.lower()
    if lower.endswith(_IMAGE_SUFFIXES):
        return True
    return any(pattern in lower for pattern in EMAIL_BLOCKLIST)


def extract_emails(html: str, limit: int = MAX_EMAILS) -> list[str]:
    """Extract contact emails ranked by confidence.

    Args:
        html: Raw page HTML (one page or several concatenated).
        limit: Maximum number of addresses to return.

    Returns:
        Lowercased, deduplicated addresses, best first.
    """
    decoded = decode_entities(html)
    emails: list[str] = []
    seen: set[str] = set()
    for match in EMAIL_RE.findall(decoded):
        email = match.strip(".").lower()
        if email in seen or is_blocked_email(email):
            continue
        seen.add(email)
        emails.append(email)
    emails.sort(key=email_rank, reverse=True)
    return emails[:limit]


def _first_href(soup: BeautifulSoup, needles: Sequence[str]) -> Optional[str]:
    """First link href containing any of the needles."""
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if any(n in href.lower() for n in needles):
            return href
    return None


def extract_contact_channels(soup: BeautifulSoup, html: str) -> list[str]:
    """Detect contact form, messaging, scheduling and chat-widget channels.

    Args:
        soup: Parsed homepage, used for link inspection.
        html: Raw HTML of all fetched pages, scanned for widget signatures.

    Returns:
        Channel descriptors such as ``form:/contact`` or ``intercom:detected``.
    """
    channels = []

    contact_link = _first_href(soup, ("/contact",))
    if contact_link is None:
        form = soup.find("form", action=re.compile("contact", re.IGNORECASE))
        if form is not None:
            contact_link = form.get("action")
    if contact_link:
        channels.append(f"form:{contact_link}")

    for label, needles in _LINK_CHANNELS:
        href = _first_href(soup, needles)
        if href:
            channels.append(f"{label}:{href}")

    source_lower = (html or "").lower()
    for label, signature in _WIDGET_SIGNATURES:
        if signature in source_lower:
            channels.append(f"{label}:detected")

    return channels


def team_size_bucket(count: int) -> str:
    """Map a team-image count to a size bucket."""
    if count <= 0:
        return "0"
    if count <= 3:
        return "1-3"
    if count <= 10:
        return "4-10"
    return "10+"


def detect_team_signals(soup: BeautifulSoup, text: str) -> tuple[bool, str]:
    """Careers flag and a rough team-size bucket.

    The size is estimated from team-labeled images on the homepage
    (``img[alt*=team]`` and images inside ``[class*=team]`` containers).

    Returns:
        Tuple of (has_careers, team_size_estimate).
    """
    has_careers = bool(_CAREERS_RE.search(text or ""))
    team_images = soup.select('img[alt*="team" i], [class*="team"] img')
    return has_careers, team_size_bucket(len(team_images))


def _parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO timestamp, assuming UTC when no zone is given."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def calculate_freshness(
    discovered_at: str,
    text: str,
    source: str,
    source_url: str,
    launch_feeds: Sequence[tuple[str, Sequence[str]]],
    now: Optional[datetime] = None,
) -> tuple[int, str]:
    """Score 0-5 for how recently a candidate appears to have launched.

    Args:
        discovered_at: ISO timestamp the harvester first saw the candidate.
        text: Combined page text.
        source: Source tag of the candidate.
        source_url: Originating URL.
        launch_feeds: Ordered (label, patterns) for launch-feed origins.
        now: Reference time; defaults to the current UTC time.

    Returns:
        Tuple of (freshness_score, launch_context).
    """
    now = now or datetime.now(timezone.utc)
    discovered = _parse_timestamp(discovered_at) or now
    days_old = (now - discovered).total_seconds() / 86400

    score = 0
    if days_old < 7:
        score += 3
    elif days_old < 14:
        score += 2
    elif days_old < 30:
        score += 1

    origin = f"{source} {source_url}".lower()
    feed_label = ""
    for label, patterns in launch_feeds:
        if any(p in origin for p in patterns):
            feed_label = label
            break
    if feed_label:
        score += 2

    if _LAUNCH_LANGUAGE_RE.search(text or ""):
        score += 1
    if _BETA_LANGUAGE_RE.search(text or ""):
        score += 1

    if feed_label:
        context = feed_label
    elif _BETA_CONTEXT_RE.search(text or ""):
        context = "Beta"
    elif days_old < 7:
        context = "New"
    else:
        context = ""

    return min(score, 5), context
