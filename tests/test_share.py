"""Tests for share links.

**Feature: daybook**
"""

from datetime import date

from hypothesis import given, settings
from hypothesis import strategies as st

from daybook.models import TradeDay
from daybook.share import (
    SHARE_ID_ALPHABET,
    SharedSummary,
    generate_share_id,
    mask_email,
    share_url,
)


class TestShareId:
    """
    **Feature: daybook, Property 16: Opaque Share Tokens**

    Tokens are 11 base36 characters and do not repeat.
    """

    def test_format(self):
        share_id = generate_share_id()

        assert len(share_id) == 11
        assert set(share_id) <= set(SHARE_ID_ALPHABET)

    def test_unique(self):
        assert len({generate_share_id() for _ in range(200)}) == 200

    def test_url(self):
        assert share_url("https://example.com/", "abc123") == "https://example.com/share/abc123"


class TestMaskEmail:
    """
    **Feature: daybook, Property 17: Email Masking**

    Only the first three characters of the local part stay visible.
    """

    def test_examples(self):
        assert mask_email("johndoe@example.com") == "joh****@example.com"
        assert mask_email("amy@example.com") == "amy@example.com"
        assert mask_email(None) == "Anonymous"
        assert mask_email("not-an-email") == "not-an-email"

    @given(
        local=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789.", min_size=4, max_size=30),
        domain=st.sampled_from(["example.com", "mail.org"]),
    )
    @settings(max_examples=100)
    def test_masks_all_but_three(self, local: str, domain: str):
        masked = mask_email(f"{local}@{domain}")

        assert masked == f"{local[:3]}{'*' * (len(local) - 3)}@{domain}"


class TestSharedSummary:
    """
    **Feature: daybook, Property 18: Public Summary Stats**

    The public view aggregates like the private one but hides the streak.
    """

    def test_stats(self):
        summary = SharedSummary(
            share_id="abc",
            email="joh****@example.com",
            days=[
                TradeDay(date=date(2024, 1, 1), profit=100, trades_count=2),
                TradeDay(date=date(2024, 1, 2), profit=-40, trades_count=1),
            ],
        )

        stats = summary.stats("all-time")

        assert stats.profit == 60
        assert stats.trades == 3
        assert stats.win_rate == 50
        assert stats.longest_streak is None
