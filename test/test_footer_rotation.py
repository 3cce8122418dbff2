import asyncio
import contextlib
import logging
from unittest.mock import AsyncMock

from classifieds.services.footer_rotation import (
    DISPLAY_WINDOW,
    INITIAL_DELAY,
    FooterAdRotation,
    RotationState,
)
from test.factories import FooterListingFactory


def footer_ads(exposures, max_exposures=1):
    return [
        FooterListingFactory.build(id=f"ad-{i + 1}", exposures=used, max_exposures=max_exposures)
        for i, used in enumerate(exposures)
    ]


async def tick(rotation, times):
    for _ in range(times):
        await rotation.tick()
    await rotation.wait_for_reports()


async def test_empty_load_is_idle():
    rotation = FooterAdRotation(report_exposure=AsyncMock())
    rotation.load([])
    await tick(rotation, INITIAL_DELAY + 1)
    assert rotation.state is RotationState.IDLE
    assert rotation.current is None


async def test_first_ad_shows_after_initial_delay():
    report = AsyncMock()
    rotation = FooterAdRotation(report_exposure=report)
    rotation.load(footer_ads([0]))

    await tick(rotation, INITIAL_DELAY - 1)
    assert rotation.state is RotationState.ARMED
    report.assert_not_awaited()

    await tick(rotation, 1)
    assert rotation.state is RotationState.SHOWING
    assert rotation.current.id == "ad-1"
    assert rotation.seconds_left == DISPLAY_WINDOW
    report.assert_awaited_once_with("ad-1")


async def test_full_countdown_reports_exactly_one_exposure():
    report = AsyncMock()
    rotation = FooterAdRotation(report_exposure=report)
    rotation.load(footer_ads([0]))
    await tick(rotation, INITIAL_DELAY)

    await tick(rotation, DISPLAY_WINDOW - 1)
    assert rotation.state is RotationState.SHOWING
    assert rotation.seconds_left == 1

    await rotation.tick()
    assert rotation.state is RotationState.HIDDEN
    assert report.await_count == 1


async def test_exhausted_ads_are_skipped():
    report = AsyncMock()
    ads = footer_ads([1, 0, 0])
    rotation = FooterAdRotation(report_exposure=report, initial_delay=1, display_window=1)
    rotation.load(ads)

    shown = []
    for _ in range(6):
        await rotation.tick()
        if rotation.state is RotationState.SHOWING:
            shown.append(rotation.current.id)
    await rotation.wait_for_reports()

    assert shown == ["ad-2", "ad-3", "ad-2"]
    assert "ad-1" not in [call.args[0] for call in report.await_args_list]
    # Local snapshots are left alone, the backend owns the counters
    assert [ad.exposures for ad in ads] == [1, 0, 0]


async def test_all_exhausted_goes_idle():
    events = []

    async def on_event(event, payload):
        events.append(event)

    report = AsyncMock()
    rotation = FooterAdRotation(report_exposure=report, on_event=on_event)
    rotation.load(footer_ads([1, 1]))
    await tick(rotation, INITIAL_DELAY)

    assert rotation.state is RotationState.IDLE
    assert events == ["idle"]
    report.assert_not_awaited()


async def test_dismiss_hides_and_rearms():
    report = AsyncMock()
    rotation = FooterAdRotation(report_exposure=report)
    rotation.load(footer_ads([0, 0], max_exposures=5))
    await tick(rotation, INITIAL_DELAY)

    await rotation.dismiss()
    assert rotation.state is RotationState.HIDDEN
    assert rotation.current is None

    await tick(rotation, INITIAL_DELAY)
    assert rotation.state is RotationState.SHOWING
    assert rotation.current.id == "ad-2"
    assert report.await_count == 2


async def test_dismiss_when_nothing_is_shown_does_nothing():
    rotation = FooterAdRotation(report_exposure=AsyncMock())
    rotation.load(footer_ads([0]))
    await rotation.dismiss()
    assert rotation.state is RotationState.ARMED


async def test_contact_hides_and_forwards_the_listing():
    on_contact = AsyncMock()
    ads = footer_ads([0])
    rotation = FooterAdRotation(report_exposure=AsyncMock(), on_contact=on_contact)
    rotation.load(ads)
    await tick(rotation, INITIAL_DELAY)

    await rotation.contact()

    assert rotation.state is RotationState.HIDDEN
    on_contact.assert_awaited_once_with(ads[0])


async def test_failed_report_keeps_the_ad_on_screen(caplog):
    report = AsyncMock(side_effect=RuntimeError("rpc down"))
    rotation = FooterAdRotation(report_exposure=report)
    rotation.load(footer_ads([0]))

    with caplog.at_level(logging.ERROR, logger="classifieds.services.footer_rotation"):
        await tick(rotation, INITIAL_DELAY)

    assert rotation.state is RotationState.SHOWING
    assert rotation.current.id == "ad-1"
    assert "rpc down" in caplog.text
    assert caplog.records[-1].exc_info is not None

    await rotation.tick()
    assert rotation.seconds_left == DISPLAY_WINDOW - 1
    assert report.await_count == 1


async def test_slow_report_does_not_hold_the_countdown():
    async def slow_report(ad_id):
        await asyncio.sleep(0.5)

    rotation = FooterAdRotation(report_exposure=slow_report, initial_delay=1, display_window=1000)
    rotation.load(footer_ads([0]))

    runner = asyncio.create_task(rotation.run(tick_seconds=0.01))
    try:
        await asyncio.sleep(0.3)
        assert rotation.state is RotationState.SHOWING
        assert rotation.seconds_left <= 995
    finally:
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
    await rotation.wait_for_reports()


async def test_load_restarts_both_timers():
    report = AsyncMock()
    rotation = FooterAdRotation(report_exposure=report)
    rotation.load(footer_ads([0]))
    await tick(rotation, INITIAL_DELAY + 10)
    assert rotation.state is RotationState.SHOWING

    rotation.load(footer_ads([0, 0]))
    assert rotation.state is RotationState.ARMED
    assert rotation.current is None

    await tick(rotation, INITIAL_DELAY - 1)
    assert rotation.state is RotationState.ARMED
    await tick(rotation, 1)
    assert rotation.current.id == "ad-1"
    assert rotation.seconds_left == DISPLAY_WINDOW


async def test_events_stream():
    events = []

    async def on_event(event, payload):
        events.append((event, payload))

    rotation = FooterAdRotation(
        report_exposure=AsyncMock(), on_event=on_event, initial_delay=1, display_window=3
    )
    rotation.load(footer_ads([0]))
    await tick(rotation, 4)

    assert [event for event, _ in events] == ["show", "tick", "tick", "hide"]
    assert events[0][1] == {"ad_id": "ad-1", "seconds_left": 3}
    assert events[-1][1] == {"ad_id": "ad-1"}
