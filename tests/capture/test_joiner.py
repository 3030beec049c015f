"""Tests for GoogleMeetJoiner with a mocked page."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from meetcap.capture.joiner import (
    JOIN_BUTTONS,
    LEAVE_BUTTON,
    NAME_INPUT,
    AdmissionTimeoutError,
    GoogleMeetJoiner,
    JoinError,
    MeetingJoiner,
)


def make_locator(count: int) -> MagicMock:
    locator = MagicMock()
    locator.count = AsyncMock(return_value=count)
    locator.first.fill = AsyncMock()
    locator.first.click = AsyncMock()
    return locator


@pytest.fixture
def page() -> MagicMock:
    page = MagicMock()
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()
    return page


def use_locators(page: MagicMock, present: set[str]) -> dict[str, MagicMock]:
    locators = {
        selector: make_locator(1 if selector in present else 0)
        for selector in (NAME_INPUT, LEAVE_BUTTON, *JOIN_BUTTONS)
    }
    page.locator.side_effect = lambda selector: locators[selector]
    return locators


def test_satisfies_protocol(page):
    assert isinstance(GoogleMeetJoiner(page), MeetingJoiner)


class TestJoin:
    """Tests for GoogleMeetJoiner.join."""

    async def test_fills_name_and_asks_to_join(self, page):
        locators = use_locators(page, {NAME_INPUT, JOIN_BUTTONS[1]})

        await GoogleMeetJoiner(page, settle_seconds=0).join("https://meet/x", "Meetcap")

        page.goto.assert_awaited_once_with("https://meet/x", wait_until="domcontentloaded")
        locators[NAME_INPUT].first.fill.assert_awaited_once_with("Meetcap")
        locators[JOIN_BUTTONS[1]].first.click.assert_awaited_once()

    async def test_prefers_join_now(self, page):
        locators = use_locators(page, set(JOIN_BUTTONS))

        await GoogleMeetJoiner(page, settle_seconds=0).join("https://meet/x", "Meetcap")

        locators[JOIN_BUTTONS[0]].first.click.assert_awaited_once()
        locators[JOIN_BUTTONS[1]].first.click.assert_not_awaited()

    async def test_no_join_button(self, page):
        use_locators(page, set())

        with pytest.raises(JoinError):
            await GoogleMeetJoiner(page, settle_seconds=0).join("https://meet/x", "Meetcap")

    async def test_navigation_failure(self, page):
        page.goto.side_effect = RuntimeError("net::ERR_NAME_NOT_RESOLVED")

        with pytest.raises(JoinError):
            await GoogleMeetJoiner(page, settle_seconds=0).join("https://meet/x", "Meetcap")


class TestAdmission:
    """Tests for admission and leaving."""

    async def test_admitted(self, page):
        await GoogleMeetJoiner(page).wait_for_admission(5)

        page.wait_for_selector.assert_awaited_once_with(LEAVE_BUTTON, timeout=5000)

    async def test_timeout(self, page):
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")

        with pytest.raises(AdmissionTimeoutError):
            await GoogleMeetJoiner(page).wait_for_admission(5)

    async def test_leave_is_best_effort(self, page):
        page.locator.side_effect = RuntimeError("page closed")

        await GoogleMeetJoiner(page).leave()

    async def test_leave_clicks_button(self, page):
        locators = use_locators(page, {LEAVE_BUTTON})

        await GoogleMeetJoiner(page).leave()

        locators[LEAVE_BUTTON].first.click.assert_awaited_once()
