from typing import Any, ClassVar

from intake.database.models import IdentityRecord
from intake.database.repositories.session_record_repository import SessionRecordRepository


class IdentityRepository(SessionRecordRepository[IdentityRecord]):
    """Database operations for the identity documents table."""

    COLUMNS: ClassVar[dict[str, str]] = {
        "first_name": "FirstName",
        "last_name": "LastName",
        "date_of_birth": "DateOfBirth",
        "id_number": "IdNumber",
        "issued_date": "IssuedDate",
        "valid_until": "ValidUntil",
        "role": "Role",
        "id_type": "IdType",
    }

    def _from_row(self, row: dict[str, Any]) -> IdentityRecord:
        return IdentityRecord(
            id=row["id"],
            session_id=row["SessionId"],
            first_name=row.get("FirstName") or "",
            last_name=row.get("LastName") or "",
            date_of_birth=row.get("DateOfBirth") or "",
            id_number=row.get("IdNumber") or "",
            issued_date=row.get("IssuedDate") or "",
            valid_until=row.get("ValidUntil") or "",
            role=row.get("Role") or "",
            id_type=row.get("IdType") or "mainId",
            created_at=row.get("created_at"),
        )
