"""Tests for calbot/channels/formatter.py

Tests the MarkdownV2 output of each notification kind:
- Escaping of user text and link targets
- Day schedule, reminder, change alert and week-ahead layouts
"""

from datetime import timedelta

import pytest

from calbot.channels.formatter import (
    CHANGE_CANCELLED,
    CHANGE_MOVED,
    CHANGE_NEW,
    escape_markdown,
    escape_url,
    format_day_schedule,
    format_event_changed,
    format_links,
    format_reminder,
    format_week_ahead,
    long_date,
)


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def meeting(make_event):
    return make_event(
        "sync",
        minutes=120,
        title="Q1 sync (all-hands)",
        location="Room 4.2",
        description="Join https://meet.google.com/abc-defg-hij\nNotes https://docs.example.com/n",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Escaping
# ─────────────────────────────────────────────────────────────────────────────


class TestEscaping:
    def test_escape_markdown_special_characters(self):
        assert escape_markdown("a_b*c.d!") == "a\\_b\\*c\\.d\\!"
        assert escape_markdown("(1+1=2)") == "\\(1\\+1\\=2\\)"

    def test_plain_text_untouched(self):
        assert escape_markdown("Standup") == "Standup"

    def test_escape_url_only_touches_parens_and_backslash(self):
        assert escape_url("https://x.io/a_(b)") == "https://x.io/a_(b\\)"

    def test_long_date(self, base_time):
        assert long_date(base_time) == "10 March 2026"


# ─────────────────────────────────────────────────────────────────────────────
# Layouts
# ─────────────────────────────────────────────────────────────────────────────


class TestFormatLinks:
    def test_meeting_link_then_other_links(self, meeting):
        text = format_links(meeting)

        assert "📹 [Join meeting](https://meet.google.com/abc-defg-hij)" in text
        assert "🔗 https://docs\\.example\\.com/n" in text
        assert text.index("📹") < text.index("🔗")

    def test_no_links(self, make_event):
        assert format_links(make_event("plain")) == ""


class TestDaySchedule:
    def test_empty_day(self, base_time):
        assert format_day_schedule([], base_time) == "📅 *10 March 2026*\n\nNo meetings today 🎉"

    def test_numbered_entries_and_count(self, make_event, base_time):
        events = [
            make_event("standup", minutes=60, duration=15),
            make_event("review", minutes=180, duration=None),
        ]

        text = format_day_schedule(events, base_time)

        assert text.startswith("📅 *10 March 2026* \\- today's schedule")
        assert "1\\. *Standup* \\(09:00–09:15\\)" in text
        assert "2\\. *Review* \\(11:00\\)" in text
        assert text.endswith("_Meetings today: 2_")


class TestReminder:
    def test_reminder_layout(self, meeting):
        text = format_reminder(meeting, 30)

        assert text.startswith("⏰ *In 30 minutes:* Q1 sync \\(all\\-hands\\)")
        assert "🕐 10:00 – 10:30" in text
        assert "📍 Room 4\\.2" in text
        assert "[Join meeting]" in text

    def test_long_description_is_truncated(self, make_event):
        event = make_event("long", description="<p>" + "x" * 400 + "</p>")

        text = format_reminder(event, 10)

        assert "x" * 300 + "…" in text
        assert "x" * 301 not in text
        assert "<p>" not in text


class TestEventChanged:
    def test_new(self, meeting):
        text = format_event_changed(meeting, CHANGE_NEW)

        assert text.startswith("🆕 *New meeting:*")
        assert "10\\.03 at 10:00" in text

    def test_moved(self, meeting):
        text = format_event_changed(meeting, CHANGE_MOVED)

        assert text.startswith("🔄 *Meeting moved:*")
        assert "New time: *10\\.03 at 10:00*" in text

    def test_cancelled(self, meeting):
        assert format_event_changed(meeting, CHANGE_CANCELLED).startswith("❌ *Meeting cancelled:*")

    def test_unknown_kind_falls_back_to_changed(self, meeting):
        assert format_event_changed(meeting, "updated").startswith("✏️ *Meeting changed:*")


class TestWeekAhead:
    def test_empty_week(self):
        text = format_week_ahead([])

        assert text.startswith("🚀 *Bot started\\!*")
        assert text.endswith("_No meetings_ 🎉")

    def test_grouped_by_day(self, make_event, meeting):
        later = make_event("retro", minutes=24 * 60 + 60)

        text = format_week_ahead([meeting, later])

        assert "📅 *Tuesday, 10\\.03*" in text
        assert "📅 *Wednesday, 11\\.03*" in text
        assert "  • Q1 sync \\(all\\-hands\\) \\(10:00–10:30\\)" in text
        assert "    📹 [Join](https://meet.google.com/abc-defg-hij)" in text
        assert text.endswith("_Total meetings: 2_")
        assert text.count("📅") == 2

    def test_same_day_shares_heading(self, make_event):
        events = [make_event("a", minutes=60), make_event("b", minutes=120)]

        assert format_week_ahead(events).count("📅") == 1
