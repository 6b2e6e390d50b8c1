"""
Report submission orchestrator

One attempt walks idle → validating → normalizing → uploading → persisting
→ succeeded, or drops into failed from any non-terminal step. Validation is
synchronous and happens before any I/O. Nothing is retried automatically;
the user resubmits the same form.
"""

import asyncio
import io
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence

from PIL import Image

from ..core.config import settings
from ..core.exceptions import (
    PollutionReportException,
    ReportValidationException,
    StoreRejectionException,
    TransportException,
)
from ..core.logging_config import get_logger
from ..models.report_models import Report, ReportStatus
from ..models.upload_models import NormalizedImage, RawImage, UploadBatch
from ..models.user_models import AppUser
from .blob_store import ALLOWED_MIME_TYPES, blob_store
from .geocoding_service import geocoding_service
from .image_normalizer import ImageNormalizer, image_normalizer
from .preview_service import PreviewHandle, PreviewService
from .report_store import ReportStore, report_store
from .upload_coordinator import UploadCoordinator

logger = get_logger("submission_service")


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    NORMALIZING = "normalizing"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


IN_FLIGHT_STATES = {
    SubmissionState.VALIDATING,
    SubmissionState.NORMALIZING,
    SubmissionState.UPLOADING,
    SubmissionState.PERSISTING,
}


class FailureKind(str, Enum):
    MISSING_FIELD = "missing_field"
    TRANSPORT = "transport"
    STORE_REJECTED = "store_rejected"


@dataclass
class SubmissionForm:
    """User-entered report fields plus the transient state of one attempt"""
    report_type: str = ""
    location: str = ""
    description: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    date_taken: str = ""
    time_taken: str = ""
    images: List[RawImage] = field(default_factory=list)
    previews: List[PreviewHandle] = field(default_factory=list)
    progress_per_image: List[int] = field(default_factory=list)
    overall_percent: int = 0
    uploading: bool = False
    state: SubmissionState = SubmissionState.IDLE
    history: List[SubmissionState] = field(default_factory=list)
    error: Optional[str] = None

    def select_images(self, images: Sequence[RawImage], max_files: int,
                      previews: Optional[PreviewService] = None) -> None:
        """Replace the selection, keeping at most max_files, and rebuild previews"""
        self.release_previews()
        self.images = list(images)[:max_files]
        if previews is not None:
            self.previews = [p for p in (previews.create(image) for image in self.images) if p]
        self.progress_per_image = [0] * len(self.images)

    def release_previews(self) -> None:
        for preview in self.previews:
            preview.release()
        self.previews = []

    def clear_transient(self) -> None:
        """Drop progress and previews, keep what the user typed and selected"""
        self.release_previews()
        self.progress_per_image = [0] * len(self.images)
        self.overall_percent = 0
        self.uploading = False

    def reset(self) -> None:
        """Clear everything after a successful submission"""
        self.clear_transient()
        self.report_type = ""
        self.location = ""
        self.description = ""
        self.lat = None
        self.lng = None
        self.date_taken = ""
        self.time_taken = ""
        self.images = []
        self.progress_per_image = []

    def transition(self, state: SubmissionState) -> None:
        self.state = state
        self.history.append(state)


@dataclass
class SubmissionResult:
    state: SubmissionState
    report: Optional[Report] = None
    failure_kind: Optional[FailureKind] = None
    message: str = ""
    error: Optional[PollutionReportException] = None

    @property
    def succeeded(self) -> bool:
        return self.state == SubmissionState.SUCCEEDED


def _is_decodable(image: RawImage) -> bool:
    try:
        with Image.open(io.BytesIO(image.data)) as candidate:
            candidate.verify()
        return True
    except Exception:
        return False


def validate_submission(form: SubmissionForm, actor: Optional[AppUser], max_files: int) -> None:
    """Check the form before any I/O; raises ReportValidationException"""
    if actor is None:
        raise ReportValidationException("You must be logged in to submit a report", {"field": "user"})
    if not form.report_type.strip():
        raise ReportValidationException("Please select pollution type", {"field": "type"})
    if not form.description.strip():
        raise ReportValidationException("Please provide a description", {"field": "description"})
    if form.lat is None or form.lng is None:
        raise ReportValidationException("Please pin the pollution location on the map", {"field": "location"})
    if not form.images:
        raise ReportValidationException("Please upload at least one image", {"field": "images"})
    if len(form.images) > max_files:
        raise ReportValidationException(f"Please upload at most {max_files} images", {"field": "images"})

    for position, image in enumerate(form.images, start=1):
        if image.size == 0:
            raise ReportValidationException(f"Image {position} is empty", {"field": "images"})
        if image.size > settings.report_image_max_bytes:
            raise ReportValidationException(
                f"Image {position} is too large (max {settings.report_image_max_size_mb}MB)",
                {"field": "images"}
            )
        if image.content_type.lower() not in ALLOWED_MIME_TYPES:
            raise ReportValidationException(
                f"Image {position} has an unsupported type: {image.content_type}",
                {"field": "images"}
            )
        if not _is_decodable(image):
            raise ReportValidationException(f"Image {position} could not be read", {"field": "images"})


class ReportSubmissionOrchestrator:
    """Validate, normalize, upload and persist one report submission"""

    def __init__(
        self,
        normalizer: ImageNormalizer,
        coordinator: UploadCoordinator,
        store: ReportStore,
        geocoder=None,
        max_files: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.normalizer = normalizer
        self.coordinator = coordinator
        self.store = store
        self.geocoder = geocoder
        self.max_files = max_files or settings.max_files
        self._clock = clock

    async def submit(
        self,
        form: SubmissionForm,
        actor: Optional[AppUser],
        on_progress: Optional[Callable[[UploadBatch], None]] = None
    ) -> SubmissionResult:
        """
        Run one submission attempt

        Args:
            form: Form with user fields and selected images
            actor: Authenticated submitter; stamps ownership and barangay
            on_progress: Receives the upload batch after every progress event

        Returns:
            SubmissionResult describing success or the failure kind
        """
        if form.state in IN_FLIGHT_STATES:
            raise RuntimeError("A submission is already in progress for this form")

        form.history = []
        form.error = None
        form.transition(SubmissionState.IDLE)
        form.transition(SubmissionState.VALIDATING)
        try:
            validate_submission(form, actor, self.max_files)
        except ReportValidationException as e:
            return self._fail(form, FailureKind.MISSING_FIELD, e.message, e, release=False)

        form.uploading = True
        form.progress_per_image = [0] * len(form.images)
        form.overall_percent = 0

        try:
            form.transition(SubmissionState.NORMALIZING)
            normalized = await self._normalize_all(form.images)

            form.transition(SubmissionState.UPLOADING)

            def track(batch: UploadBatch) -> None:
                form.progress_per_image = batch.percentages
                form.overall_percent = batch.overall_percent
                if on_progress is not None:
                    on_progress(batch)

            urls = await self.coordinator.upload_all(normalized, actor.uid, on_progress=track)

            form.transition(SubmissionState.PERSISTING)
            record = await self._build_record(form, actor, urls)
            report_id = await self.store.create(record)
            report = Report(**{**record, "id": report_id})

        except TransportException as e:
            return self._fail(
                form, FailureKind.TRANSPORT,
                f"Failed to submit report: {e.message}. Please try again.", e
            )
        except StoreRejectionException as e:
            return self._fail(form, FailureKind.STORE_REJECTED, f"Report was rejected: {e.message}", e)
        except asyncio.CancelledError:
            self._fail(form, FailureKind.TRANSPORT, "Submission was cancelled", TransportException("Submission cancelled"))
            raise
        except Exception as e:
            logger.error(f"❌ Unexpected error while submitting report: {e}", exc_info=True)
            error = TransportException(f"Unexpected error: {e}", {"state": form.state.value})
            error.__cause__ = e
            return self._fail(form, FailureKind.TRANSPORT, "Failed to submit report. Please try again.", error)

        form.transition(SubmissionState.SUCCEEDED)
        form.reset()
        logger.info(f"✅ Report {report_id} submitted by {actor.uid} with {len(urls)} image(s)")
        return SubmissionResult(
            state=SubmissionState.SUCCEEDED,
            report=report,
            message="Report submitted successfully! It will be reviewed and approved by an admin before it is published."
        )

    async def _normalize_all(self, images: Sequence[RawImage]) -> List[NormalizedImage]:
        # One at a time to bound peak memory
        normalized = []
        for raw in images:
            result = await self.normalizer.normalize(raw)
            if result.ok:
                normalized.append(result.image)
            else:
                logger.warning(f"⚠️ Using original {raw.filename}: {result.error.message}")
                normalized.append(NormalizedImage.from_raw(raw))
        return normalized

    async def _build_record(self, form: SubmissionForm, actor: AppUser, urls: List[str]) -> dict:
        now = self._clock()
        location = form.location.strip()
        if not location and self.geocoder is not None:
            location = await self.geocoder.reverse(form.lat, form.lng) or ""
        if not location:
            location = f"{form.lat:.5f}, {form.lng:.5f}"

        return {
            "reporter_id": actor.uid,
            "reporter_name": actor.display_name,
            "type": form.report_type.strip(),
            "location": location,
            "description": form.description.strip(),
            "lat": form.lat,
            "lng": form.lng,
            "date": form.date_taken or now.date().isoformat(),
            "time": form.time_taken or now.strftime("%H:%M:%S"),
            "images": list(urls),
            "barangay_id": actor.barangay or None,
            "approved": False,
            "status": ReportStatus.PENDING.value,
            "upvoted_by": [],
            "admin_response": None,
            "comments": [],
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }

    def _fail(
        self,
        form: SubmissionForm,
        kind: FailureKind,
        message: str,
        error: PollutionReportException,
        release: bool = True
    ) -> SubmissionResult:
        if release:
            form.clear_transient()
        form.uploading = False
        form.error = message
        form.transition(SubmissionState.FAILED)
        logger.warning(f"⚠️ Submission failed ({kind.value}): {message}")
        return SubmissionResult(state=SubmissionState.FAILED, failure_kind=kind, message=message, error=error)


# Global orchestrator wired to the configured collaborators
submission_service = ReportSubmissionOrchestrator(
    normalizer=image_normalizer,
    coordinator=UploadCoordinator(blob_store),
    store=report_store,
    geocoder=geocoding_service,
)
