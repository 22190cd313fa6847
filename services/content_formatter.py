"""Turn shared text into a (title, body) pair for the publishing API.

The rule, applied in order:

1. Bare ``http(s)`` URLs are wrapped as ``<a href="URL">URL</a>``. URLs that
   already sit inside an ``<a>`` element or an attribute value are left alone.
2. The first non-empty line becomes the title, the rest (stripped) the body.
3. If that first line carried a link, the title is its tag-free text and the
   body keeps the whole anchored text, so no link is ever lost from the body.
4. Titles longer than ``TITLE_MAX_LENGTH`` are cut at the last word boundary;
   the overflow is prepended to the body.

``None`` or blank input yields ``FormattedContent("", "")``.
"""

import re

from platforms.base import FormattedContent

TITLE_MAX_LENGTH = 100

URL_PATTERN = re.compile(
    r"(?<![=\"'/\w])https?://[^\s\)\]\}<>\"',]+[^\s\)\]\}<>\"',.\!?]"
)
ANCHOR_PATTERN = re.compile(r"<a\b[^>]*>.*?</a>", re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")


def compose_shared_text(text, source_url=None):
    """Append the shared page URL to the text, separated by a blank line."""
    current = text or ""
    source = source_url or ""
    if not source:
        return current
    spacing = "\n\n" if current else ""
    return f"{current}{spacing}{source}"


def anchor_links(text):
    """Wrap bare URLs in anchor markup, skipping existing anchors."""
    if not text:
        return ""
    pieces = []
    position = 0
    for anchor in ANCHOR_PATTERN.finditer(text):
        pieces.append(_anchor_segment(text[position:anchor.start()]))
        pieces.append(anchor.group(0))
        position = anchor.end()
    pieces.append(_anchor_segment(text[position:]))
    return "".join(pieces)


def _anchor_segment(segment):
    return URL_PATTERN.sub(
        lambda m: f'<a href="{m.group(0)}">{m.group(0)}</a>', segment
    )


def split_subject_and_body(text):
    """Split already-anchored text into (subject, body)."""
    stripped = (text or "").strip()
    if not stripped:
        return "", ""

    first_line, _, rest = stripped.partition("\n")
    first_line = first_line.strip()
    rest = rest.strip()

    if TAG_PATTERN.search(first_line):
        subject = TAG_PATTERN.sub("", first_line).strip()
        subject, _ = _truncate_subject(subject)
        return subject, stripped

    subject, overflow = _truncate_subject(first_line)
    if overflow:
        body = f"{overflow}\n\n{rest}" if rest else overflow
    else:
        body = rest
    return subject, body


def _truncate_subject(subject):
    if len(subject) <= TITLE_MAX_LENGTH:
        return subject, ""
    cut = subject.rfind(" ", 0, TITLE_MAX_LENGTH + 1)
    if cut <= 0:
        cut = TITLE_MAX_LENGTH
    return subject[:cut].rstrip(), subject[cut:].strip()


def format_content(raw_text):
    """Return the FormattedContent for a piece of shared text."""
    subject, body = split_subject_and_body(anchor_links(raw_text))
    return FormattedContent(title=subject, body=body)
