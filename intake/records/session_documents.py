from dataclasses import dataclass, field
from datetime import datetime, timezone

from intake.config.settings import Settings
from intake.database.models import CertificateRecord, IdentityRecord
from intake.database.repositories.certificate_repository import CertificateRepository
from intake.database.repositories.identity_repository import IdentityRepository
from intake.logging.logger import Log
from intake.records.exceptions import RecordNotFoundError


@dataclass
class SessionSummary:
    total_documents: int
    identity_documents: int
    certificate_documents: int
    processed_date: str


@dataclass
class SessionDocuments:
    """Everything extracted for one session, as shown on the review screen."""

    session_id: str
    identities: list[IdentityRecord] = field(default_factory=list)
    certificates: list[CertificateRecord] = field(default_factory=list)

    @property
    def summary(self) -> SessionSummary:
        return SessionSummary(
            total_documents=len(self.identities) + len(self.certificates),
            identity_documents=len(self.identities),
            certificate_documents=len(self.certificates),
            processed_date=datetime.now(timezone.utc).isoformat(),
        )


class SessionDocumentsService:
    """Reads and approves the records the automation extracted for a session."""

    def __init__(
        self,
        identity_repo: IdentityRepository,
        certificate_repo: CertificateRepository,
    ) -> None:
        self._identity_repo = identity_repo
        self._certificate_repo = certificate_repo

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionDocumentsService":
        return cls(
            IdentityRepository(settings.identity_table),
            CertificateRepository(settings.certificate_table),
        )

    def fetch(self, session_id: str) -> SessionDocuments:
        """Load identity and certificate records for a session.

        Raises:
            RecordNotFoundError: if the session has no records at all.
        """
        Log.info(f"Fetching records for session {session_id}")
        documents = SessionDocuments(
            session_id=session_id,
            identities=self._identity_repo.find_by_session(session_id),
            certificates=self._certificate_repo.find_by_session(session_id),
        )
        summary = documents.summary
        if summary.total_documents == 0:
            raise RecordNotFoundError(f"No records found for session {session_id}")
        Log.info(
            f"Session {session_id}: {summary.identity_documents} identity, "
            f"{summary.certificate_documents} certificate record(s)"
        )
        return documents

    def list_identities(self, limit: int | None = None) -> list[IdentityRecord]:
        """Every identity row across sessions, for the person-data grid."""
        records = self._identity_repo.find_all(limit)
        Log.info(f"Listed {len(records)} identity record(s)")
        return records

    def list_certificates(self, limit: int | None = None) -> list[CertificateRecord]:
        records = self._certificate_repo.find_all(limit)
        Log.info(f"Listed {len(records)} certificate record(s)")
        return records

    def save_all(self, documents: SessionDocuments) -> SessionDocuments:
        """Upsert every record of the session and return them with ids set."""
        identities = [self._identity_repo.save(record) for record in documents.identities]
        certificates = [self._certificate_repo.save(record) for record in documents.certificates]
        Log.info(
            f"Approved session {documents.session_id}: "
            f"{len(identities) + len(certificates)} record(s) saved"
        )
        return SessionDocuments(
            session_id=documents.session_id,
            identities=identities,
            certificates=certificates,
        )
