from typing import Any, ClassVar

from intake.database.models import CertificateRecord
from intake.database.repositories.session_record_repository import SessionRecordRepository


class CertificateRepository(SessionRecordRepository[CertificateRecord]):
    """Database operations for the company certificate table."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "company_name": "CompanyNameHeb",
        "business_id": "BusinessId",
        "issued_date": "IssuedDate",
        "cert_type": "cert_type",
        "office_address": "officeAdr",
        "mail_address": "mailAdr",
    }

    def _from_row(self, row: dict[str, Any]) -> CertificateRecord:
        return CertificateRecord(
            id=row["id"],
            session_id=row["SessionId"],
            company_name=row.get("CompanyNameHeb") or "",
            business_id=row.get("BusinessId") or "",
            issued_date=row.get("IssuedDate") or "",
            cert_type=row.get("cert_type") or "",
            office_address=row.get("officeAdr") or "",
            mail_address=row.get("mailAdr") or "",
            created_at=row.get("created_at"),
        )
