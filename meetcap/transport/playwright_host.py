"""Playwright page as a host transport.

The hook script is registered as an init script, so it runs in every new
document before the page's own scripts. Bridge functions are exposed on
the page's window and awaited by the hook, which holds back the page's
frame loop until the host has taken each frame.
"""

from importlib import resources

import structlog
from playwright.async_api import Page

from meetcap.transport.interceptor import TransportInterceptor

logger = structlog.get_logger()

HOOK_SCRIPT = "hook.js"
SCRAPE_SCRIPT = "scrape.js"


def load_script(name: str) -> str:
    """Read a page script shipped with this package."""
    return resources.files("meetcap.transport").joinpath(name).read_text(encoding="utf-8")


class PlaywrightHost:
    """HostTransport backed by a Playwright page."""

    def __init__(self, page: Page):
        self.page = page
        self._hook = load_script(HOOK_SCRIPT)
        self._scrape = load_script(SCRAPE_SCRIPT)

    async def install_interceptor(self, interceptor: TransportInterceptor) -> None:
        """Expose the bridge and register the hook for future documents.

        Call before navigating to the meeting.
        """
        bindings = {
            "meetcapTrackOpen": interceptor.track_opened,
            "meetcapFrame": interceptor.frame_received,
            "meetcapTrackEnded": interceptor.track_ended,
            "meetcapMixedFrame": interceptor.mixed_frame_received,
            "meetcapStreamMap": interceptor.stream_map_received,
            "meetcapLog": interceptor.page_log,
        }
        for name, callback in bindings.items():
            await self.page.expose_function(name, callback)
        await self.page.add_init_script(script=self._hook)

    async def interceptor_installed(self) -> bool:
        return bool(
            await self.page.evaluate(
                "() => Boolean(window.__meetcapHook && window.__meetcapHook.installed)"
            )
        )

    async def activate_capture(self) -> None:
        held = await self.page.evaluate(
            "() => window.__meetcapHook ? window.__meetcapHook.activate() : -1"
        )
        if held is None or held < 0:
            logger.error("capture activation failed, hook missing")
            return
        logger.info("capture activated", held_tracks=held)

    async def snapshot_participants(self) -> list[dict]:
        return await self.page.evaluate(self._scrape)
