import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from fastapi import HTTPException, status
from pydantic import BaseModel, Field

from croptech.models.crop_report import CropReport
from croptech.models.language import Language, normalize_language
from croptech.models.location import Coordinates, is_known_pin_code, is_pin_code
from croptech.services.ai_workflow_runtime import StreamEmitter
from croptech.services.crop_analysis_service import get_crop_analysis
from croptech.services.report_views import build_report_views
from croptech.services.reverse_geocoder import get_pin_from_coordinates

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = (
    "Unable to connect to the analysis service. "
    "Please check your internet connection or try again later."
)


class AnalysisState(BaseModel):
    language: Language = Language.ENGLISH
    loading: bool = False
    locating: bool = False
    error: Optional[str] = None
    data: Optional[CropReport] = None

    @property
    def phase(self) -> str:
        if self.loading:
            return "loading"
        if self.error:
            return "error"
        if self.data is not None:
            return "success"
        return "idle"

    def to_message(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", exclude_none=True, exclude={"data"})
        payload["phase"] = self.phase
        if self.data is not None:
            payload["data"] = self.data.model_dump(mode="json", exclude_none=True)
            payload["views"] = build_report_views(self.data).model_dump(mode="json")
        return payload


class RefetchRequested(BaseModel):
    """Emitted when the language changes while a report is on screen."""

    location: Union[Coordinates, str]
    language: Language


class DetectLocationResult(BaseModel):
    pin_code: Optional[str] = None
    searched: bool = Field(
        default=False,
        description="True when no PIN was found and the coordinates were analyzed directly.",
    )


StateListener = Callable[[AnalysisState], Awaitable[None]]
Analyzer = Callable[..., Awaitable[CropReport]]
ReverseGeocoder = Callable[[float, float], Awaitable[Optional[str]]]


class AnalysisSession:
    """
    Owns the loading/error/data state of one client.

    Only the most recent search may write its outcome: starting a new search
    cancels the one in flight. Location detection runs under its own
    'locating' flag and does not touch the analysis state until it hands
    coordinates to search().
    """

    def __init__(
        self,
        *,
        language: Optional[str] = None,
        user_id: Optional[str] = None,
        on_state_change: Optional[StateListener] = None,
        stream_emitter: Optional[StreamEmitter] = None,
        analyzer: Optional[Analyzer] = None,
        reverse_geocoder: Optional[ReverseGeocoder] = None,
    ) -> None:
        self.state = AnalysisState(language=normalize_language(language))
        self.user_id = user_id
        self.last_query: Optional[Union[str, Coordinates]] = None
        self._on_state_change = on_state_change
        self._stream_emitter = stream_emitter
        self._analyzer = analyzer or get_crop_analysis
        self._reverse_geocoder = reverse_geocoder or get_pin_from_coordinates
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    async def _publish(self) -> None:
        if self._on_state_change is None:
            return
        try:
            await self._on_state_change(self.state.model_copy())
        except Exception:
            logger.warning("Failed to publish analysis state for user_id=%s", self.user_id)

    async def _cancel_in_flight(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def search(
        self,
        query: Union[str, Coordinates],
        language: Optional[str] = None,
    ) -> AnalysisState:
        active_language = (
            normalize_language(language) if language else self.state.language
        )
        await self._cancel_in_flight()
        self._generation += 1
        generation = self._generation

        self.last_query = query
        self.state.language = active_language
        self.state.loading = True
        self.state.error = None
        self.state.data = None
        await self._publish()

        task = asyncio.create_task(
            self._analyzer(
                query,
                active_language.value,
                user_id=self.user_id,
                stream_emitter=self._stream_emitter,
            )
        )
        self._task = task
        try:
            report = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                # Superseded by a newer search, which now owns the state.
                return self.state
            raise
        except HTTPException as exc:
            logger.warning(
                "Crop analysis failed for user_id=%s (status=%s, detail=%s)",
                self.user_id,
                exc.status_code,
                exc.detail,
            )
            if generation == self._generation:
                self.state.error = CONNECTION_ERROR_MESSAGE
                self.state.data = None
        except Exception:
            logger.exception("Unexpected crop analysis failure for user_id=%s", self.user_id)
            if generation == self._generation:
                self.state.error = CONNECTION_ERROR_MESSAGE
                self.state.data = None
        else:
            if generation == self._generation:
                if report.has_error:
                    self.state.error = report.error
                    self.state.data = None
                else:
                    self.state.data = report
        finally:
            if generation == self._generation:
                self._task = None
                self.state.loading = False

        if generation == self._generation:
            await self._publish()
        return self.state

    async def change_language(self, language: str) -> Optional[RefetchRequested]:
        new_language = normalize_language(language)
        self.state.language = new_language
        if self.state.data is None:
            await self._publish()
            return None

        # The report PIN is reused when it is a real one; otherwise the last query.
        location = self.state.data.pin_code
        if not is_known_pin_code(location):
            location = self.last_query

        event = RefetchRequested(location=location, language=new_language)
        if self._stream_emitter is not None:
            try:
                await self._stream_emitter(
                    {
                        "action": "change_language",
                        "event": "refetch_requested",
                        "data": event.model_dump(mode="json"),
                    }
                )
            except Exception:
                logger.warning("Failed to emit refetch event for user_id=%s", self.user_id)
        await self.handle_refetch(event)
        return event

    async def handle_refetch(self, event: RefetchRequested) -> AnalysisState:
        return await self.search(event.location, event.language.value)

    async def detect_location(self, lat: float, lng: float) -> DetectLocationResult:
        if self.state.locating:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Location detection is already in progress.",
            )

        self.state.locating = True
        await self._publish()
        try:
            pin_code = await self._reverse_geocoder(lat, lng)
        finally:
            self.state.locating = False
            await self._publish()

        if pin_code and is_pin_code(pin_code):
            return DetectLocationResult(pin_code=pin_code)

        await self.search(Coordinates(lat=lat, lng=lng))
        return DetectLocationResult(searched=True)

    async def reset(self) -> AnalysisState:
        await self._cancel_in_flight()
        self._generation += 1
        self.last_query = None
        self.state = AnalysisState(language=self.state.language)
        await self._publish()
        return self.state

    async def close(self) -> None:
        await self._cancel_in_flight()
