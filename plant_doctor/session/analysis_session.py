from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Optional

from plant_doctor.core.errors import (
    InvalidTransitionError,
    NoImageSelectedError,
    PlantDoctorError,
    RemoteCallError,
    SessionBusyError,
    ValidationError,
)
from plant_doctor.core.models import ImageFile, ReleasableHandle, UploadedImage
from plant_doctor.diagnosis.base import DiagnosisClient
from plant_doctor.observability.metrics import (
    DIAGNOSIS_REQUESTS_TOTAL,
    DIAGNOSIS_SECONDS,
    SESSION_TRANSITIONS_TOTAL,
    VALIDATION_FAILURES_TOTAL,
)
from plant_doctor.preprocessing.encoding import create_preview_handle, encode_to_transport_text
from plant_doctor.preprocessing.validation import MAX_IMAGE_BYTES, validate_image
from plant_doctor.session.states import (
    AnalysisState,
    Analyzing,
    Completed,
    Failed,
    Idle,
    ImageSelected,
    image_of,
)

logger = logging.getLogger(__name__)

PreviewFactory = Callable[[ImageFile], ReleasableHandle]


class AnalysisSession:
    """
    Single-flight state machine driving one upload -> diagnose -> show cycle.

        Idle --select_image--> ImageSelected --start_analysis--> Analyzing
        Analyzing --> Completed | Failed
        ImageSelected | Completed | Failed --select_image--> ImageSelected
        any (except Analyzing) --reset--> Idle

    The session is the only writer of its state and of the current preview
    handle. Everything runs on one event loop, so there are no locks: the
    Analyzing state itself is the re-entry guard. While Analyzing, select_image
    and reset raise SessionBusyError; a second start_analysis is a no-op.
    """

    def __init__(
        self,
        client: DiagnosisClient,
        *,
        session_id: Optional[str] = None,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        preview_factory: PreviewFactory = create_preview_handle,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self._client = client
        self._max_image_bytes = max_image_bytes
        self._preview_factory = preview_factory
        self._state: AnalysisState = Idle()

    @property
    def state(self) -> AnalysisState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return isinstance(self._state, Analyzing)

    # -----------------------------
    # Operations
    # -----------------------------

    def select_image(self, file: ImageFile) -> AnalysisState:
        """
        Validate and adopt a new image, discarding any previous result or error.

        On validation failure the ValidationError is raised and the state is
        left exactly as it was.
        """
        self._ensure_not_busy("select_image")

        error: Optional[ValidationError] = validate_image(file, max_bytes=self._max_image_bytes)
        if error is not None:
            VALIDATION_FAILURES_TOTAL.labels(code=error.code).inc()
            logger.info(
                "image_rejected session_id=%s code=%s name=%s mime=%s size=%d",
                self.session_id, error.code, file.name, file.mime_type, file.size,
            )
            raise error

        preview = self._preview_factory(file)
        self._release_preview()
        self._transition(ImageSelected(UploadedImage(file=file, preview=preview)))
        return self._state

    async def start_analysis(self) -> AnalysisState:
        """
        Encode the selected image and run the remote diagnosis.

        Legal from ImageSelected and Failed (retry on the same image). While
        Analyzing, returns the current state without a second remote call.
        Analysis failures never raise: they land in Failed.
        """
        state = self._state
        if isinstance(state, Analyzing):
            logger.info("analysis_already_running session_id=%s", self.session_id)
            return state
        if isinstance(state, Idle):
            raise NoImageSelectedError()
        if isinstance(state, Completed):
            raise InvalidTransitionError("Analysis already completed; select another image or reset")

        image = state.image
        analyzing = Analyzing(image)
        self._transition(analyzing)

        model_label = getattr(self._client, "model_id", "unknown")
        t0 = time.perf_counter()

        try:
            transport_text = await encode_to_transport_text(image.file)
            result = await self._client.diagnose(transport_text)
            outcome: AnalysisState = Completed(image=image, result=result)
            DIAGNOSIS_REQUESTS_TOTAL.labels(result="ok", model=model_label).inc()

        except PlantDoctorError as e:
            DIAGNOSIS_REQUESTS_TOTAL.labels(result=e.code, model=model_label).inc()
            logger.warning(
                "analysis_failed session_id=%s code=%s message=%s", self.session_id, e.code, e.message
            )
            outcome = Failed(image=image, error=e)

        except Exception as e:
            DIAGNOSIS_REQUESTS_TOTAL.labels(result="failed", model=model_label).inc()
            logger.exception("analysis_crashed session_id=%s", self.session_id)
            outcome = Failed(image=image, error=RemoteCallError(f"{type(e).__name__}: {e}", cause=e))

        except BaseException:
            # Cancelled from outside: give the image back so the user can retry.
            if self._state is analyzing:
                self._transition(ImageSelected(image))
            raise

        duration_s = time.perf_counter() - t0
        DIAGNOSIS_SECONDS.labels(model=model_label).observe(duration_s)

        if self._state is not analyzing:
            logger.warning("analysis_result_discarded session_id=%s reason=stale", self.session_id)
            return self._state

        self._transition(outcome)
        logger.info(
            "analysis_done session_id=%s status=%s model=%s duration_ms=%d",
            self.session_id, outcome.status, model_label, int(duration_s * 1000),
        )
        return outcome

    def reset(self) -> AnalysisState:
        """Back to Idle, releasing any held preview handle."""
        self._ensure_not_busy("reset")
        self._release_preview()
        if not isinstance(self._state, Idle):
            self._transition(Idle())
        return self._state

    # -----------------------------
    # Internals
    # -----------------------------

    def _ensure_not_busy(self, operation: str) -> None:
        if self.is_busy:
            logger.info("session_busy session_id=%s operation=%s", self.session_id, operation)
            raise SessionBusyError()

    def _release_preview(self) -> None:
        image: Optional[UploadedImage] = image_of(self._state)
        if image is not None and not image.preview.released:
            image.preview.release()

    def _transition(self, new_state: AnalysisState) -> None:
        logger.debug(
            "session_transition session_id=%s from=%s to=%s",
            self.session_id, self._state.status, new_state.status,
        )
        SESSION_TRANSITIONS_TOTAL.labels(to_state=new_state.status).inc()
        self._state = new_state
