from __future__ import annotations

from datetime import datetime, timezone

from adapters.message_formatting import NO_CONTENT, extract_display_text, format_job_post
from core.models import SourceMessage


def test_display_text_prefers_body_then_caption() -> None:
    assert extract_display_text(SourceMessage(message_id=1, text="body", caption="cap")) == "body"
    assert extract_display_text(SourceMessage(message_id=1, caption="cap")) == "cap"
    assert extract_display_text(SourceMessage(message_id=1)) == NO_CONTENT


def test_format_escapes_all_html_specials() -> None:
    message = SourceMessage(message_id=7, text="a & b <c> \"d\" 'e'")
    body = format_job_post(message)
    assert "a &amp; b &lt;c&gt; &quot;d&quot; &#x27;e&#x27;" in body
    assert body.startswith("<b>💼 New Job Post</b>")
    assert "Unknown date" in body
    assert "Source: Channel" not in body


def test_format_includes_date_and_source_line() -> None:
    message = SourceMessage(
        message_id=8,
        text="hi",
        date=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        has_source_peer=True,
    )
    body = format_job_post(message)
    assert "📅 Posted: " in body
    assert "2024" in body
    assert "🆔 Message ID: 8" in body
    assert body.endswith("<i>📢 Source: Channel</i>")
