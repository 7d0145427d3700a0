import threading
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from intake.config.settings import Settings
from intake.logging.logger import Log
from intake.submission.envelope import extract_session_id
from intake.submission.exceptions import (
    ConfigurationError,
    FailureReason,
    SubmissionError,
    ValidationError,
)
from intake.submission.models import (
    PayloadDocument,
    ProgressEvent,
    SubmissionForm,
    SubmissionPayload,
    SubmissionResult,
    SubmissionState,
)
from intake.submission.webhook_client import WebhookClient
from intake.uploads.base import BaseUploadBackend
from intake.uploads.factory import UploadBackendFactory
from intake.uploads.models import BatchResult, DocumentCategory, DocumentItem, UploadOutcome
from intake.uploads.naming import join_path, sanitize_file_name
from intake.validation.file_validator import FileValidator

ProgressObserver = Callable[[ProgressEvent], None]

MAIN_ID_FOLDER = "main-id"
ADDITIONAL_IDS_FOLDER = "additional-ids"
CERTIFICATE_FOLDER = "certificate"

# Progress milestones; uploads fill the span between UPLOAD_START and UPLOAD_END.
_PERCENT = {
    SubmissionState.VALIDATING: 5,
    SubmissionState.UPLOADING: 10,
    SubmissionState.SUBMITTING: 75,
    SubmissionState.AWAITING_RESPONSE: 80,
    SubmissionState.PARSING: 90,
    SubmissionState.DONE: 100,
}
UPLOAD_START = 10
UPLOAD_END = 70


class SubmissionOrchestrator:
    """Drive one form submission from validation to session identifier.

    Idle -> Validating -> Uploading -> Submitting -> AwaitingResponse ->
    Parsing -> Done, with Failed reachable from every non-terminal state.
    The observer, if any, is called synchronously on every transition and
    per uploaded file; percent never decreases and exactly one terminal
    event is emitted per submission.
    """

    def __init__(
        self,
        settings: Settings,
        backend: BaseUploadBackend,
        webhook_client: WebhookClient,
        validator: FileValidator,
        observer: ProgressObserver | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._backend = backend
        self._webhook = webhook_client
        self._validator = validator
        self._observer = observer
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._state = SubmissionState.IDLE
        self._percent = 0

    @property
    def state(self) -> SubmissionState:
        return self._state

    def submit(self, form: SubmissionForm) -> SubmissionResult:
        """Run the full submission. Errors are reported in the result, never raised.

        Raises:
            RuntimeError: if another submission is already running on this instance.
        """
        if not self._lock.acquire(blocking=False):
            raise RuntimeError("A submission is already in progress on this orchestrator")
        try:
            self._state = SubmissionState.IDLE
            self._percent = 0
            return self._run(form)
        finally:
            self._lock.release()

    def close(self) -> None:
        """Release the HTTP clients held by the backend and the webhook client."""
        self._backend.close()
        self._webhook.close()

    def _run(self, form: SubmissionForm) -> SubmissionResult:
        result = SubmissionResult(state=SubmissionState.IDLE)
        try:
            self._transition(SubmissionState.VALIDATING, "Checking form")
            user_email = self._check_preconditions(form)

            self._transition(SubmissionState.UPLOADING, "Uploading documents")
            session_folder = self._session_folder(user_email)
            batch = self._upload_groups(form, user_email, session_folder)
            result.failures = list(batch.failures)
            if not batch.successes:
                raise ValidationError(
                    FailureReason.NO_SUCCESSFUL_UPLOADS,
                    f"None of the {batch.total} file(s) could be uploaded",
                )

            self._transition(
                SubmissionState.SUBMITTING,
                f"{len(batch.successes)} uploaded, {len(batch.failures)} failed",
            )
            payload = self._build_payload(form, batch, session_folder, user_email)
            result.payload = payload

            self._transition(SubmissionState.AWAITING_RESPONSE, "Waiting for webhook")
            response = self._webhook.post(payload)

            self._transition(SubmissionState.PARSING, "Reading session identifier")
            result.session_id = extract_session_id(response.text)
        except SubmissionError as exc:
            return self._fail(result, exc)
        except Exception as exc:
            Log.error(f"Unexpected error during submission: {type(exc).__name__}: {exc}")
            return self._fail(result, exc)

        self._transition(SubmissionState.DONE, f"Session {result.session_id}")
        result.state = SubmissionState.DONE
        Log.info(f"Submission done, session {result.session_id}")
        return result

    def _check_preconditions(self, form: SubmissionForm) -> str:
        if not self._settings.webhook_url:
            raise ConfigurationError(
                FailureReason.WEBHOOK_URL_MISSING, "Webhook URL is not configured"
            )
        if not self._settings.webhook_api_key:
            raise ConfigurationError(
                FailureReason.WEBHOOK_KEY_MISSING, "Webhook API key is not configured"
            )
        user_email = (form.user_email or self._settings.user_email).strip()
        if not user_email:
            raise ConfigurationError(
                FailureReason.USER_EMAIL_MISSING, "Submitting user's email could not be resolved"
            )
        if form.main_id is None:
            raise ValidationError(
                FailureReason.MAIN_ID_MISSING, "Main identity document is required"
            )
        if not form.roles:
            raise ValidationError(FailureReason.ROLE_MISSING, "At least one role is required")
        if form.certificate is None:
            raise ValidationError(
                FailureReason.CERTIFICATE_MISSING, "Category document is required"
            )
        certificate_type = self._certificate_type(form)
        valid_types = [c.value for c in DocumentCategory.certificate_types()]
        if certificate_type not in valid_types:
            raise ValidationError(
                FailureReason.CERTIFICATE_TYPE_INVALID,
                f"Certificate type '{certificate_type}' must be one of {valid_types}",
            )
        for item in form.items:
            self._validator.validate(item.file)
        Log.info(f"Form valid: {len(form.items)} file(s) for {user_email}")
        return user_email

    @staticmethod
    def _certificate_type(form: SubmissionForm) -> str:
        if form.certificate_type:
            return form.certificate_type
        return form.certificate.category.value if form.certificate else ""

    def _session_folder(self, user_email: str) -> str:
        stamp = self._clock().strftime("%Y%m%d-%H%M%S")
        local_part = sanitize_file_name(user_email.split("@", 1)[0])
        return join_path(self._settings.storage_base_folder, f"{stamp}_{local_part}")

    def _upload_groups(
        self,
        form: SubmissionForm,
        owner_identity: str,
        session_folder: str,
    ) -> BatchResult:
        groups: list[tuple[str, Sequence[DocumentItem]]] = [
            (MAIN_ID_FOLDER, [form.main_id] if form.main_id else []),
            (ADDITIONAL_IDS_FOLDER, form.additional_ids),
            (CERTIFICATE_FOLDER, [form.certificate] if form.certificate else []),
        ]
        total_files = sum(len(items) for _, items in groups)
        done = 0

        def on_outcome(outcome: UploadOutcome) -> None:
            nonlocal done
            done += 1
            percent = UPLOAD_START + (UPLOAD_END - UPLOAD_START) * done // total_files
            self._notify(
                SubmissionState.UPLOADING,
                percent,
                f"{done}/{total_files}: {outcome.original_name}",
            )

        combined = BatchResult()
        for sub_folder, items in groups:
            if not items:
                continue
            folder = join_path(session_folder, sub_folder)
            combined.extend(
                self._backend.upload_many(items, owner_identity, folder, on_outcome=on_outcome)
            )
        return combined

    def _build_payload(
        self,
        form: SubmissionForm,
        batch: BatchResult,
        session_folder: str,
        user_email: str,
    ) -> SubmissionPayload:
        documents = tuple(
            PayloadDocument.from_success(item_id, success)
            for item_id, success in enumerate(batch.successes, start=1)
        )
        return SubmissionPayload(
            documents=documents,
            document_type=self._certificate_type(form),
            timestamp=self._clock().isoformat(),
            session_folder=session_folder,
            user_email=user_email,
            api_key=self._settings.webhook_api_key,
            wire_prefix=self._backend.wire_prefix,
        )

    def _fail(self, result: SubmissionResult, exc: Exception) -> SubmissionResult:
        Log.error(f"Submission failed in state {self._state.value}: {exc}")
        self._state = SubmissionState.FAILED
        self._notify(SubmissionState.FAILED, self._percent, str(exc))
        result.state = SubmissionState.FAILED
        result.error = exc
        result.session_id = None
        return result

    def _transition(self, state: SubmissionState, message: str) -> None:
        Log.info(f"Submission state {self._state.value} -> {state.value}")
        self._state = state
        self._notify(state, _PERCENT[state], message)

    def _notify(self, state: SubmissionState, percent: int, message: str) -> None:
        self._percent = max(self._percent, percent)
        if self._observer is not None:
            self._observer(ProgressEvent(state=state, percent=self._percent, message=message))


def build_orchestrator(
    settings: Settings,
    observer: ProgressObserver | None = None,
) -> SubmissionOrchestrator:
    """Wire the configured backend, webhook client and validator."""
    return SubmissionOrchestrator(
        settings=settings,
        backend=UploadBackendFactory.create(settings),
        webhook_client=WebhookClient.from_settings(settings),
        validator=FileValidator.from_settings(settings),
        observer=observer,
    )
