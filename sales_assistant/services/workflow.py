"""Session state machine: intake -> analysis -> review -> ad generation -> done.

One controller instance lives for the whole process. Every external call is
awaited in place, and its result is applied only if the session that issued
it is still the active one and still waiting for it; anything else is a stale
response (e.g. the user hit reset meanwhile) and is dropped.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterable

from sales_assistant.models.session import WorkflowSession
from sales_assistant.schemas.car import AdContent, AnalysisResult, CarDetails, HistoryItem, WorkflowState
from sales_assistant.services.history_store import HistoryStore
from sales_assistant.services.resources import ImageUpload, ResourceLifecycle, encode_image
from sales_assistant.utils.exceptions import (
    AnalysisError,
    AppException,
    GenerationError,
    HistoryItemNotFoundError,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)

Analyzer = Callable[[list[str], CarDetails], Awaitable[AnalysisResult]]
Generator = Callable[[AnalysisResult, list[str], CarDetails], Awaitable[AdContent]]

ANALYSIS_SUCCESS = "Аналіз успішно завершено!"
ANALYSIS_FAILED = "Помилка аналізу. Перевірте з'єднання."
GENERATION_SUCCESS = "Маркетингові тексти готові!"
GENERATION_FAILED = "Помилка генерації текстів."
STALE_RESULT = "Сесію змінено, результат проігноровано."


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Notice:
    """User-facing outcome of an action, shown as a transient notification."""

    level: NoticeLevel
    message: str

    @property
    def ok(self) -> bool:
        return self.level is not NoticeLevel.ERROR


def _now_ms() -> int:
    return int(time.time() * 1000)


def _error_message(exc: Exception, default: str) -> str:
    if isinstance(exc, AppException):
        return exc.message or default
    return str(exc) or default


class WorkflowController:
    def __init__(
        self,
        analyzer: Analyzer,
        generator: Generator,
        history_store: HistoryStore,
        resources: ResourceLifecycle,
    ):
        self._analyzer = analyzer
        self._generator = generator
        self._history = history_store
        self._resources = resources
        self.state = WorkflowState.IDLE
        self.session = WorkflowSession()
        self.history: list[HistoryItem] = []

    def _require(self, action: str, *states: WorkflowState) -> None:
        if self.state not in states:
            raise InvalidTransitionError(f"Дія '{action}' недоступна у стані {self.state.value}")

    def _is_stale(self, session_id: str, expected: WorkflowState) -> bool:
        return self.session.id != session_id or self.state is not expected

    def _assign_images(self, handles: list[str], encoded: list[str]) -> None:
        previous = self.session.images
        self.session.images = handles
        self.session.base64_images = encoded
        self._resources.revoke(previous)

    async def load_history(self) -> list[HistoryItem]:
        self.history = await self._history.load()
        return self.history

    async def delete_history(self, item_id: str) -> list[HistoryItem]:
        self.history = await self._history.delete(item_id)
        return self.history

    async def start(self, files: Iterable[ImageUpload], details: CarDetails) -> Notice:
        self._require("start", WorkflowState.IDLE)
        files = list(files)

        self.state = WorkflowState.ANALYZING
        self.session.active_image_index = 0
        session_id = self.session.id or uuid.uuid4().hex
        self.session.id = session_id
        logger.info("Session %s: analyzing %d image(s)", session_id, len(files))

        encoded = [encode_image(f) for f in files]
        try:
            result = await self._analyzer(encoded, details)
        except AnalysisError as e:
            return self._analysis_failed(session_id, _error_message(e, ANALYSIS_FAILED))
        except Exception as e:
            logger.exception("Analyzer raised unexpectedly for session %s", session_id)
            return self._analysis_failed(session_id, _error_message(e, ANALYSIS_FAILED))

        if self._is_stale(session_id, WorkflowState.ANALYZING):
            logger.info("Session %s: discarding stale analysis result", session_id)
            return Notice(NoticeLevel.IGNORED, STALE_RESULT)

        self._assign_images(self._resources.create(files), encoded)
        self.session.car_details = details
        self.session.analysis = result
        self.session.ads = None
        self.state = WorkflowState.REVIEW

        self.history = await self._history.save(HistoryItem(
            id=session_id,
            timestamp=_now_ms(),
            car_details=details,
            analysis=result,
            ads=None,
            images=[],
        ))
        return Notice(NoticeLevel.SUCCESS, ANALYSIS_SUCCESS)

    def _analysis_failed(self, session_id: str, message: str) -> Notice:
        if self._is_stale(session_id, WorkflowState.ANALYZING):
            logger.info("Session %s: discarding stale analysis failure", session_id)
            return Notice(NoticeLevel.IGNORED, STALE_RESULT)
        # The session id is kept so a retry lands on the same history item.
        logger.warning("Session %s: analysis failed: %s", session_id, message)
        self.state = WorkflowState.IDLE
        return Notice(NoticeLevel.ERROR, message)

    async def generate(self) -> Notice:
        self._require("generate", WorkflowState.REVIEW, WorkflowState.DONE)
        analysis = self.session.analysis
        if analysis is None:
            raise InvalidTransitionError("Немає результатів аналізу для генерації")

        session_id = self.session.id
        details = self.session.car_details
        images = list(self.session.base64_images)

        self.state = WorkflowState.GENERATING_ADS
        logger.info("Session %s: generating ads from %d image(s)", session_id, len(images))
        try:
            ads = await self._generator(analysis, images, details)
        except GenerationError as e:
            return self._generation_failed(session_id, _error_message(e, GENERATION_FAILED))
        except Exception as e:
            logger.exception("Generator raised unexpectedly for session %s", session_id)
            return self._generation_failed(session_id, _error_message(e, GENERATION_FAILED))

        if self._is_stale(session_id, WorkflowState.GENERATING_ADS):
            logger.info("Session %s: discarding stale ads", session_id)
            return Notice(NoticeLevel.IGNORED, STALE_RESULT)

        self.session.ads = ads
        self.state = WorkflowState.DONE

        self.history = await self._history.save(HistoryItem(
            id=session_id,
            timestamp=_now_ms(),
            car_details=details,
            analysis=analysis,
            ads=ads,
            images=[],
        ))
        return Notice(NoticeLevel.SUCCESS, GENERATION_SUCCESS)

    def _generation_failed(self, session_id: str, message: str) -> Notice:
        if self._is_stale(session_id, WorkflowState.GENERATING_ADS):
            logger.info("Session %s: discarding stale generation failure", session_id)
            return Notice(NoticeLevel.IGNORED, STALE_RESULT)
        logger.warning("Session %s: ad generation failed: %s", session_id, message)
        self.state = WorkflowState.REVIEW
        return Notice(NoticeLevel.ERROR, message)

    def back(self) -> None:
        self._require("back", WorkflowState.DONE)
        self.state = WorkflowState.REVIEW

    def view_ads(self) -> None:
        self._require("view_ads", WorkflowState.REVIEW)
        if self.session.ads is None:
            raise InvalidTransitionError("Оголошення для цієї сесії ще не згенеровано")
        self.state = WorkflowState.DONE

    def select_image(self, index: int) -> None:
        if not 0 <= index < len(self.session.images):
            raise AppException(f"Немає зображення з індексом {index}", status_code=422)
        self.session.active_image_index = index

    def reset(self) -> None:
        previous = self.session.images
        self.session = WorkflowSession()
        self.state = WorkflowState.IDLE
        self._resources.revoke(previous)
        logger.info("Workflow reset, released %d display handle(s)", len(previous))

    def restore(self, item_id: str) -> None:
        self._require("restore", WorkflowState.IDLE)
        item = next((h for h in self.history if h.id == item_id), None)
        if item is None:
            raise HistoryItemNotFoundError(item_id)

        previous = self.session.images
        # History never carries images, so a restored session has none to show or send.
        self.session = WorkflowSession(
            id=item.id,
            car_details=item.car_details,
            analysis=item.analysis,
            ads=item.ads,
        )
        self.state = WorkflowState.DONE if item.ads is not None else WorkflowState.REVIEW
        self._resources.revoke(previous)
        logger.info("Session %s restored into %s", item.id, self.state.value)

    def available_actions(self) -> list[str]:
        actions = []
        if self.state is WorkflowState.IDLE:
            actions += ["start", "restore"]
        elif self.state is WorkflowState.REVIEW:
            actions.append("generate")
            if self.session.ads is not None:
                actions.append("view_ads")
        elif self.state is WorkflowState.DONE:
            actions += ["generate", "back"]
        actions.append("reset")
        return actions

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "session": self.session.to_dict(),
            "actions": self.available_actions(),
            "history": [item.model_dump(mode="json", by_alias=True) for item in self.history],
            "historyDegraded": self._history.last_error is not None,
        }
