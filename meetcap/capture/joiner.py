"""Joining a meeting as the capturing participant.

Only the English Google Meet UI is handled. Other platforms or locales
plug in by implementing MeetingJoiner.
"""

import asyncio
from typing import Protocol, runtime_checkable

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = structlog.get_logger()

NAME_INPUT = 'input[type="text"][aria-label="Your name"]'
JOIN_BUTTONS = (
    'xpath=//button[.//span[text()="Join now"]]',
    'xpath=//button[.//span[text()="Ask to join"]]',
)
LEAVE_BUTTON = '[aria-label*="Leave"]'


class JoinError(RuntimeError):
    """Raised when the join controls cannot be found or used."""


class AdmissionTimeoutError(TimeoutError):
    """Raised when the host does not admit the bot in time."""


@runtime_checkable
class MeetingJoiner(Protocol):
    """Drives the meeting UI on behalf of the capture run."""

    async def join(self, meeting_url: str, bot_name: str) -> None:
        """Open the meeting and request to join.

        Raises:
            JoinError: The meeting could not be joined
        """
        ...

    async def wait_for_admission(self, timeout: float) -> None:
        """Block until the bot is inside the meeting.

        Raises:
            AdmissionTimeoutError: Not admitted within timeout seconds
        """
        ...

    async def leave(self) -> None:
        """Leave the meeting, best effort."""
        ...


class GoogleMeetJoiner:
    """MeetingJoiner for the English Google Meet web client."""

    def __init__(self, page: Page, settle_seconds: float = 5.0):
        self.page = page
        self._settle = settle_seconds

    async def join(self, meeting_url: str, bot_name: str) -> None:
        try:
            await self.page.goto(meeting_url, wait_until="domcontentloaded")
        except Exception as e:
            raise JoinError(f"Could not open {meeting_url}: {e}") from e
        await asyncio.sleep(self._settle)

        name_input = self.page.locator(NAME_INPUT)
        if await name_input.count():
            await name_input.first.fill(bot_name)
            logger.info("entered bot name", bot_name=bot_name)

        for selector in JOIN_BUTTONS:
            button = self.page.locator(selector)
            if await button.count():
                await button.first.click()
                logger.info("join requested", selector=selector)
                return
        raise JoinError("No join button found on the meeting page")

    async def wait_for_admission(self, timeout: float) -> None:
        try:
            await self.page.wait_for_selector(LEAVE_BUTTON, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise AdmissionTimeoutError(f"Not admitted within {timeout:.0f}s") from e
        logger.info("admitted to meeting")

    async def leave(self) -> None:
        try:
            button = self.page.locator(LEAVE_BUTTON)
            if await button.count():
                await button.first.click()
                logger.info("left meeting")
        except Exception as e:
            logger.warning("leave failed", error=str(e))
