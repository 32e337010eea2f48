"""
Photo collection workflow: select a file, analyze it, review the extracted
data, simulate the upload and hand the finished record to the store.

    idle -> analyzing -> reviewing -> saving -> success

Reading the file and the analyzer call run as an asyncio task. Every attempt gets
a generation number; results that arrive after a retake or reset belong to an
older generation and are dropped.
"""

import asyncio
import base64
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from errors import WorkflowStateError
from logging_config import get_logger
from models import AnalysisOutcome, AnalysisResult, OutcomeKind, PhotoEntry
from store import copy_record
from utils import generate_uuid, now_ms

logger = get_logger(__name__)

MAX_IMAGE_MB = 10
MAX_IMAGE_BYTES = MAX_IMAGE_MB * 1024 * 1024

PROGRESS_STEP = 10
PROGRESS_INTERVAL = 0.15  # seconds between progress ticks
SETTLE_DELAY = 0.5  # pause at 100% before the record is built
HANDOFF_DELAY = 1.5  # success screen time before the store receives the record

NOT_AN_IMAGE_ERROR = "The selected file is not a valid image."
TOO_LARGE_ERROR = f"The image is too large. The maximum size is {MAX_IMAGE_MB}MB."
READ_ERROR = "Failed to read the file. Please try again."
SOFT_FAILURE_ERROR = "The AI could not identify the vehicle automatically. Please fill in the details manually."
HARD_FAILURE_ERROR = "Error connecting to the analysis service. Please fill in the details manually."

EDITABLE_FIELDS = ("license_plate", "vehicle_model", "description", "tags")


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    REVIEWING = "reviewing"
    SAVING = "saving"
    SUCCESS = "success"


@dataclass
class ImageFile:
    """An uploaded file whose bytes are already in memory"""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    async def read(self) -> bytes:
        return self.data


def validate_image_file(file) -> Optional[str]:
    """Return the error message for a file that may not enter analysis, else None"""
    content_type = getattr(file, "content_type", None) or ""
    if not content_type.startswith("image/"):
        return NOT_AN_IMAGE_ERROR
    size = getattr(file, "size", None)
    if size is not None and size > MAX_IMAGE_BYTES:
        return TOO_LARGE_ERROR
    return None


def encode_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_tags(value: Union[str, list, tuple]) -> list:
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return [str(tag) for tag in value]


class CollectionWorkflow:
    def __init__(self, analyzer, on_complete: Callable[[PhotoEntry], Any],
                 get_user_id: Callable[[], str], *,
                 progress_step: int = PROGRESS_STEP,
                 progress_interval: float = PROGRESS_INTERVAL,
                 settle_delay: float = SETTLE_DELAY,
                 handoff_delay: float = HANDOFF_DELAY):
        self.analyzer = analyzer
        self.on_complete = on_complete
        self.get_user_id = get_user_id
        self.progress_step = progress_step
        self.progress_interval = progress_interval
        self.settle_delay = settle_delay
        self.handoff_delay = handoff_delay

        self.status = WorkflowStatus.IDLE
        self.progress = 0
        self.error: Optional[str] = None
        self.preview: Optional[str] = None
        self.analysis: Optional[AnalysisResult] = None
        self.record: Optional[PhotoEntry] = None
        self.handed_off = False

        self._generation = 0
        self._analysis_task: Optional[asyncio.Task] = None
        self._save_task: Optional[asyncio.Task] = None

    # Attempt bookkeeping

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _cancel_save(self):
        if self._save_task is not None and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = None

    def _clear(self):
        self._cancel_save()
        self._next_generation()
        self.status = WorkflowStatus.IDLE
        self.progress = 0
        self.error = None
        self.preview = None
        self.analysis = None
        self.record = None
        self.handed_off = False

    # Selection and analysis

    def select_file(self, file) -> Optional[asyncio.Task]:
        """Validate the file and start decoding and analysis.

        Returns the running task, or None when the file was rejected or the
        workflow is busy with another attempt. Must be called from a running
        event loop.
        """
        if self.status != WorkflowStatus.IDLE:
            logger.warning(f"Ignoring file selection while {self.status.value}")
            return None

        error = validate_image_file(file)
        if error:
            logger.info(f"Rejected {getattr(file, 'filename', 'file')}: {error}")
            self.error = error
            return None

        self.error = None
        self.status = WorkflowStatus.ANALYZING
        generation = self._next_generation()
        self._analysis_task = asyncio.create_task(self._analyze(file, generation))
        return self._analysis_task

    async def _analyze(self, file, generation: int):
        try:
            data = file.read()
            if inspect.isawaitable(data):
                data = await data
        except Exception as e:
            if not self._is_current(generation):
                return
            logger.warning(f"Could not read {getattr(file, 'filename', 'file')}: {e}")
            self.preview = None
            self.error = READ_ERROR
            self.status = WorkflowStatus.IDLE
            return

        if not self._is_current(generation):
            return
        if len(data) > MAX_IMAGE_BYTES:
            # Declared size was missing or wrong
            logger.info(f"Rejected {getattr(file, 'filename', 'file')} after reading: {len(data)} bytes")
            self.error = TOO_LARGE_ERROR
            self.status = WorkflowStatus.IDLE
            return
        preview = await asyncio.to_thread(encode_data_url, data, file.content_type)
        if not self._is_current(generation):
            return
        self.preview = preview

        try:
            outcome = await self.analyzer.analyze(preview)
        except Exception as e:
            logger.exception(f"Analyzer raised: {e}")
            outcome = AnalysisOutcome.hard_failure(str(e))

        if not self._is_current(generation):
            logger.debug(f"Discarding analysis result from superseded attempt {generation}")
            return
        self._apply_outcome(outcome)

    def _apply_outcome(self, outcome: AnalysisOutcome):
        if outcome.kind == OutcomeKind.HARD_FAILURE:
            self.error = HARD_FAILURE_ERROR
            self.analysis = AnalysisResult()
        else:
            if outcome.kind == OutcomeKind.SOFT_FAILURE:
                self.error = SOFT_FAILURE_ERROR
            self.analysis = outcome.result.copy()
        self.status = WorkflowStatus.REVIEWING
        logger.info(f"Analysis finished ({outcome.kind.value}), awaiting review")

    # Review

    def update_field(self, field: str, value):
        if self.status != WorkflowStatus.REVIEWING:
            raise WorkflowStateError(f"Cannot edit fields while {self.status.value}")
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown field: {field}")
        if field == "tags":
            value = parse_tags(value)
        setattr(self.analysis, field, value)

    def clear_error(self):
        self.error = None

    def retake(self):
        if self.status not in (WorkflowStatus.REVIEWING, WorkflowStatus.ANALYZING):
            raise WorkflowStateError(f"Cannot retake while {self.status.value}")
        logger.info("Retaking photo")
        self._clear()

    def reset(self):
        self._clear()

    # Saving

    def confirm_save(self, confirm_empty_plate: bool = False) -> bool:
        """Start the upload. An empty plate needs confirm_empty_plate=True."""
        if self.status != WorkflowStatus.REVIEWING:
            raise WorkflowStateError(f"Cannot save while {self.status.value}")
        if not self.analysis.license_plate.strip() and not confirm_empty_plate:
            logger.info("Save blocked: license plate is empty and was not confirmed")
            return False

        snapshot = self.analysis.copy()
        self.error = None
        self.progress = 0
        self.status = WorkflowStatus.SAVING
        self._save_task = asyncio.create_task(self._save(snapshot, self.preview, self._generation))
        return True

    async def _save(self, snapshot: AnalysisResult, preview: str, generation: int):
        while self.progress < 100:
            await asyncio.sleep(self.progress_interval)
            if not self._is_current(generation):
                return
            self.progress = min(self.progress + self.progress_step, 100)

        await asyncio.sleep(self.settle_delay)
        if not self._is_current(generation):
            return
        self.record = PhotoEntry(
            id=generate_uuid(),
            url=preview,
            timestamp=now_ms(),
            user_id=self.get_user_id(),
            description=snapshot.description,
            tags=tuple(snapshot.tags),
            vehicle_model=snapshot.vehicle_model,
            license_plate=snapshot.license_plate,
        )
        self.status = WorkflowStatus.SUCCESS
        logger.info(f"Collection {self.record.id} saved")

        await asyncio.sleep(self.handoff_delay)
        if not self._is_current(generation) or self.handed_off:
            return
        self.handed_off = True
        result = self.on_complete(copy_record(self.record))
        if inspect.isawaitable(result):
            await result

    # Lifecycle

    @property
    def pending(self) -> Optional[asyncio.Task]:
        for task in (self._save_task, self._analysis_task):
            if task is not None and not task.done():
                return task
        return None

    async def join(self):
        """Wait until no analysis or save task is running"""
        while self.pending is not None:
            task = self.pending
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    async def aclose(self):
        task = self._save_task
        self._clear()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
