from dataclasses import dataclass
from datetime import datetime


@dataclass
class IdentityRecord:
    """Represents a row from the identity documents table (default ``table_id``)."""

    session_id: str
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""
    id_number: str = ""
    issued_date: str = ""
    valid_until: str = ""
    role: str = ""
    id_type: str = "mainId"
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class CertificateRecord:
    """Represents a row from the certificate table (default ``HR_cert_id``)."""

    session_id: str
    company_name: str = ""
    business_id: str = ""
    issued_date: str = ""
    cert_type: str = ""
    office_address: str = ""
    mail_address: str = ""
    id: int | None = None
    created_at: datetime | None = None
