"""One capture run, from browser launch to finalized recordings."""

import asyncio
import uuid
from datetime import UTC, datetime
from pathlib import Path

import structlog
from playwright.async_api import async_playwright

from meetcap.attribution.resolver import SpeakerResolver
from meetcap.capture.joiner import AdmissionTimeoutError, GoogleMeetJoiner, MeetingJoiner
from meetcap.capture.pipeline import CapturePipeline
from meetcap.config import Settings, get_settings
from meetcap.directory.directory import ParticipantDirectory
from meetcap.directory.scheduler import directory_refresh_lifespan
from meetcap.storage.session import RecordingSession
from meetcap.transport.base import HostTransport
from meetcap.transport.interceptor import TransportInterceptor
from meetcap.transport.playwright_host import PlaywrightHost

logger = structlog.get_logger()

BROWSER_ARGS = [
    "--use-fake-ui-for-media-stream",
    "--use-fake-device-for-media-stream",
    "--autoplay-policy=no-user-gesture-required",
]


def session_root(output_dir: Path, run_id: str) -> Path:
    """Directory for one run: UTC timestamp plus a short run id."""
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return Path(output_dir) / f"{stamp}_{run_id[:8]}"


async def run_capture(
    host: HostTransport,
    joiner: MeetingJoiner,
    session: RecordingSession,
    settings: Settings,
    meeting_url: str,
    bot_name: str,
    seconds: float,
) -> None:
    """Join, capture for a wall-clock budget, then drain the pipeline.

    The session must already be open; closing it is left to the caller so
    artifacts are finalized on every exit path.

    Raises:
        AdmissionTimeoutError: The bot was not admitted in time
        JoinError: The meeting could not be joined
    """
    directory = ParticipantDirectory(
        host.snapshot_participants,
        bot_name=bot_name,
        timeout=settings.scrape_timeout_seconds,
        match_threshold=settings.name_match_threshold,
        on_update=session.on_participants,
    )
    resolver = SpeakerResolver(directory, level_threshold=settings.csrc_level_threshold)
    pipeline = CapturePipeline(
        session,
        resolver,
        silence_threshold=settings.silence_threshold,
        silence_run_limit=settings.silence_run_limit,
        queue_size=settings.frame_queue_size,
    )
    interceptor = TransportInterceptor([pipeline])

    if not await interceptor.install(host):
        await session.log_activity("interceptor-install-failed")

    try:
        await joiner.join(meeting_url, bot_name)
        await session.log_activity("join-requested")
        try:
            await joiner.wait_for_admission(settings.admission_timeout_seconds)
        except AdmissionTimeoutError as e:
            logger.error("admission timed out", timeout=settings.admission_timeout_seconds)
            await session.log_activity(f"admission-timeout {e}")
            raise
        await session.log_activity("admitted")

        if not await interceptor.verify(host):
            await session.log_activity("capture-never-attached")
        await host.activate_capture()

        async with directory_refresh_lifespan(directory, settings.scrape_interval_seconds):
            logger.info("capturing", seconds=seconds)
            await asyncio.sleep(seconds)
    finally:
        await pipeline.stop()

    await joiner.leave()
    await session.log_activity(
        f"capture-complete tracks={len(interceptor.tracks)} participants={len(directory)}"
    )


async def record_meeting(
    meeting_url: str,
    bot_name: str | None = None,
    seconds: float | None = None,
    settings: Settings | None = None,
) -> Path:
    """Record one meeting with a Chromium browser.

    Args:
        meeting_url: Meeting to join
        bot_name: Display name to join with (settings.bot_name by default)
        seconds: Capture budget after admission (settings.capture_seconds by default)
        settings: Configuration, the cached settings by default

    Returns:
        The session root directory

    Raises:
        SessionError: The session root could not be created
        AdmissionTimeoutError: The bot was not admitted in time
        JoinError: The meeting could not be joined
    """
    settings = settings or get_settings()
    bot_name = bot_name or settings.bot_name
    seconds = seconds or settings.capture_seconds
    run_id = uuid.uuid4().hex

    session = RecordingSession(
        session_root(settings.output_dir, run_id),
        meeting_url=meeting_url,
        bot_name=bot_name,
        run_id=run_id,
        fallback_sample_rate=settings.fallback_sample_rate,
    )

    with structlog.contextvars.bound_contextvars(run_id=run_id[:8]):
        await session.open()
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(headless=settings.headless, args=BROWSER_ARGS)
                try:
                    context = await browser.new_context(permissions=["microphone", "camera"])
                    page = await context.new_page()
                    await run_capture(
                        PlaywrightHost(page),
                        GoogleMeetJoiner(page, settings.settle_seconds),
                        session,
                        settings,
                        meeting_url,
                        bot_name,
                        seconds,
                    )
                finally:
                    await browser.close()
        except Exception as e:
            logger.error("capture run failed", error_type=type(e).__name__, error=str(e))
            await session.log_activity(f"run-failed {type(e).__name__}: {e}")
            raise
        finally:
            await session.close()

    return session.root
