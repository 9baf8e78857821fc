"""
Unit tests for the per-client analysis state controller
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException

from croptech.models.crop_report import CropReport
from croptech.models.language import Language
from croptech.models.location import Coordinates, ResolvedLocation
from croptech.services.analysis_session import (
    CONNECTION_ERROR_MESSAGE,
    AnalysisSession,
    RefetchRequested,
)


def _recording_session(**kwargs):
    states = []

    async def listener(state):
        states.append(state)

    session = AnalysisSession(on_state_change=listener, **kwargs)
    return session, states


class TestSearch:
    def test_success_sets_data(self, report):
        analyzer = AsyncMock(return_value=report)
        session, states = _recording_session(analyzer=analyzer)

        state = asyncio.run(session.search("400001"))

        assert state.phase == "success"
        assert state.data is report
        assert state.error is None
        assert [s.phase for s in states] == ["loading", "success"]
        analyzer.assert_awaited_once()
        assert analyzer.await_args.args == ("400001", "en")

    def test_transport_failure_shows_generic_message(self):
        analyzer = AsyncMock(
            side_effect=HTTPException(status_code=503, detail="Model invocation failed.")
        )
        session, _ = _recording_session(analyzer=analyzer)

        state = asyncio.run(session.search("400001"))

        assert state.phase == "error"
        assert state.error == CONNECTION_ERROR_MESSAGE
        assert state.data is None
        assert state.loading is False

    def test_unexpected_failure_shows_generic_message(self):
        session, _ = _recording_session(analyzer=AsyncMock(side_effect=OSError("reset")))

        state = asyncio.run(session.search("Pune"))

        assert state.error == CONNECTION_ERROR_MESSAGE

    def test_in_band_error_is_shown_verbatim_without_data(self, report_payload):
        report_payload["error"] = "Location not found"
        analyzer = AsyncMock(return_value=CropReport.model_validate(report_payload))
        session, _ = _recording_session(analyzer=analyzer)

        state = asyncio.run(session.search("Atlantis"))

        assert state.error == "Location not found"
        assert state.data is None

    def test_new_search_clears_previous_outcome(self, report):
        analyzer = AsyncMock(
            side_effect=[HTTPException(status_code=503, detail="down"), report]
        )
        session, states = _recording_session(analyzer=analyzer)

        async def run():
            await session.search("400001")
            await session.search("400001")

        asyncio.run(run())

        loading = [s for s in states if s.loading]
        assert all(s.error is None and s.data is None for s in loading)
        assert session.state.phase == "success"

    def test_data_and_error_never_published_together(self, report_payload):
        report_payload["error"] = "Location not found"
        analyzer = AsyncMock(return_value=CropReport.model_validate(report_payload))
        session, states = _recording_session(analyzer=analyzer)

        asyncio.run(session.search("Atlantis"))

        assert all(not (s.data is not None and s.error) for s in states)

    def test_newer_search_supersedes_in_flight_one(self, report, report_payload):
        report_payload["pin_code"] = "560001"
        newer = CropReport.model_validate(report_payload)
        release_first = asyncio.Event()

        async def analyzer(query, language, **kwargs):
            if query == "400001":
                await release_first.wait()
                return report
            return newer

        session, _ = _recording_session(analyzer=analyzer)

        async def run():
            first = asyncio.create_task(session.search("400001"))
            await asyncio.sleep(0)
            await session.search("560001")
            release_first.set()
            await first

        asyncio.run(run())

        assert session.state.data.pin_code == "560001"
        assert session.state.loading is False

    def test_language_override(self, report):
        analyzer = AsyncMock(return_value=report)
        session, _ = _recording_session(analyzer=analyzer)

        asyncio.run(session.search("400001", "kn"))

        assert analyzer.await_args.args == ("400001", "kn")
        assert session.state.language == Language.KANNADA


class TestChangeLanguage:
    def test_refetches_with_previous_pin(self, report):
        analyzer = AsyncMock(return_value=report)
        session, _ = _recording_session(analyzer=analyzer)

        async def run():
            await session.search("Mumbai Fort")
            return await session.change_language("hi")

        event = asyncio.run(run())

        assert event == RefetchRequested(location="400001", language=Language.HINDI)
        assert analyzer.await_count == 2
        assert analyzer.await_args.args == ("400001", "hi")
        assert session.state.language == Language.HINDI

    def test_without_report_only_switches_language(self):
        analyzer = AsyncMock()
        session, states = _recording_session(analyzer=analyzer)

        event = asyncio.run(session.change_language("ml"))

        assert event is None
        analyzer.assert_not_awaited()
        assert states[-1].language == Language.MALAYALAM

    def test_refetch_event_is_streamed(self, report):
        emitted = []

        async def emitter(message):
            emitted.append(message)

        session = AnalysisSession(analyzer=AsyncMock(return_value=report), stream_emitter=emitter)

        async def run():
            await session.search("400001")
            await session.change_language("te")

        asyncio.run(run())

        refetch = [m for m in emitted if m.get("event") == "refetch_requested"]
        assert refetch[0]["data"] == {"location": "400001", "language": "te"}

    def test_report_without_real_pin_refetches_last_query(self, report_payload):
        report_payload["pin_code"] = ""
        blank_pin = CropReport.model_validate(report_payload)
        prompts = []

        async def generator(prompt):
            prompts.append(prompt)
            return blank_pin.model_copy(deep=True)

        resolved = ResolvedLocation(lat=18.5, lng=73.8, address="Somewhere, MH")
        service = "croptech.services.crop_analysis_service"
        with patch(f"{service}.resolve_location", new=AsyncMock(return_value=resolved)), patch(
            f"{service}.get_live_context", new=AsyncMock(return_value="Temp 30Â°C")
        ), patch(f"{service}.generate_crop_report", new=generator):
            session, _ = _recording_session()

            async def run():
                await session.search("Somewhere village")
                return await session.change_language("hi")

            event = asyncio.run(run())

        assert event.location == "Somewhere village"
        assert len(prompts) == 2
        assert "PIN code region: 000000" not in prompts[1]
        assert "Somewhere, MH" in prompts[1]
        assert "Values in Hindi." in prompts[1]

    def test_localized_pin_digits_fall_back_to_last_query(self, report_payload):
        report_payload["pin_code"] = "४००००१"
        analyzer = AsyncMock(return_value=CropReport.model_validate(report_payload))
        session, _ = _recording_session(analyzer=analyzer)

        async def run():
            await session.search("Mumbai Fort", "hi")
            return await session.change_language("en")

        event = asyncio.run(run())

        assert event.location == "Mumbai Fort"
        assert analyzer.await_args.args == ("Mumbai Fort", "en")

    def test_coordinate_search_refetches_coordinates(self, report_payload):
        report_payload["pin_code"] = "000000"
        analyzer = AsyncMock(return_value=CropReport.model_validate(report_payload))
        session, _ = _recording_session(analyzer=analyzer)
        point = Coordinates(lat=19.076, lng=72.8777)

        async def run():
            await session.search(point)
            return await session.change_language("ta")

        event = asyncio.run(run())

        assert event.location == point
        assert analyzer.await_args.args == (point, "ta")


class TestDetectLocation:
    def test_pin_found_is_returned_without_search(self):
        analyzer = AsyncMock()
        geocoder = AsyncMock(return_value="560001")
        session, states = _recording_session(analyzer=analyzer, reverse_geocoder=geocoder)

        result = asyncio.run(session.detect_location(12.9716, 77.5946))

        assert result.pin_code == "560001"
        assert result.searched is False
        analyzer.assert_not_awaited()
        assert [s.locating for s in states] == [True, False]
        assert all(not s.loading for s in states)

    def test_no_pin_searches_by_coordinates(self, report):
        analyzer = AsyncMock(return_value=report)
        session, _ = _recording_session(
            analyzer=analyzer, reverse_geocoder=AsyncMock(return_value=None)
        )

        result = asyncio.run(session.detect_location(12.9716, 77.5946))

        assert result.searched is True
        assert analyzer.await_args.args[0] == Coordinates(lat=12.9716, lng=77.5946)
        assert session.state.locating is False

    def test_concurrent_detection_is_rejected(self):
        session, _ = _recording_session(reverse_geocoder=AsyncMock(return_value="560001"))
        session.state.locating = True

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(session.detect_location(12.9716, 77.5946))
        assert exc_info.value.status_code == 409


class TestReset:
    def test_reset_returns_to_idle(self, report):
        session, _ = _recording_session(analyzer=AsyncMock(return_value=report), language="hi")

        async def run():
            await session.search("400001")
            return await session.reset()

        state = asyncio.run(run())

        assert state.phase == "idle"
        assert state.language == Language.HINDI
        assert session.last_query is None

    def test_state_message_includes_views(self, report):
        session, _ = _recording_session(analyzer=AsyncMock(return_value=report))

        asyncio.run(session.search("400001"))
        message = session.state.to_message()

        assert message["phase"] == "success"
        assert message["data"]["pin_code"] == "400001"
        assert message["views"]["price_chart"][0]["year"] == "2020"
