import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from intake.config.settings import Settings
from intake.database.connection import close_pool, init_pool
from intake.database.models import CertificateRecord, IdentityRecord
from intake.logging.logger import Log
from intake.records.exceptions import RecordNotFoundError
from intake.records.session_documents import SessionDocumentsService
from intake.submission.exceptions import ConfigurationError
from intake.submission.models import ProgressEvent, SubmissionForm
from intake.submission.orchestrator import build_orchestrator
from intake.uploads.exceptions import UploadError
from intake.uploads.factory import UploadBackendFactory
from intake.uploads.models import DocumentCategory, DocumentItem, StagedFile, UploadedFile


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="intake",
        description="Upload intake documents and hand them to the automation webhook",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    submit = commands.add_parser("submit", help="Upload a document set and print the session id")
    submit.add_argument("--main-id", type=Path, required=True, help="Main identity document")
    submit.add_argument("--role", default="", help="Role of the main identity holder")
    submit.add_argument(
        "--additional-id",
        action="append",
        default=[],
        metavar="PATH[:ROLE]",
        help="Additional identity document, repeatable",
    )
    submit.add_argument("--certificate", type=Path, required=True, help="Company certificate")
    submit.add_argument(
        "--certificate-type",
        choices=[c.value for c in DocumentCategory.certificate_types()],
        default=DocumentCategory.INCORPORATION.value,
    )
    submit.add_argument("--email", default="", help="Submitting user; defaults to USER_EMAIL")

    show = commands.add_parser("show", help="List the records stored for a session")
    show.add_argument("session_id")
    show.add_argument(
        "--approve", action="store_true", help="Save the fetched records back (upsert)"
    )

    listing = commands.add_parser("list", help="List stored records across all sessions")
    listing.add_argument(
        "--certificates", action="store_true", help="List certificate rows instead of identities"
    )
    listing.add_argument("--limit", type=int, default=None)

    files = commands.add_parser("files", help="Inspect or remove files on the upload backend")
    files.add_argument("action", choices=["list", "info", "delete"])
    files.add_argument("remote_id", nargs="?", default="", help="File id for info and delete")
    files.add_argument("--folder", default="", help="Folder to list")
    files.add_argument("--limit", type=int, default=100)
    files.add_argument("--email", default="", help="File owner; defaults to USER_EMAIL")
    return parser


def parse_additional_id(value: str) -> DocumentItem:
    """Turn ``path[:role]`` into an additional identity item."""
    path, _, role = value.partition(":")
    return DocumentItem(
        file=StagedFile.from_path(Path(path)),
        role=role,
        category=DocumentCategory.ADDITIONAL_ID,
    )


def build_form(args: argparse.Namespace) -> SubmissionForm:
    certificate_type = DocumentCategory(args.certificate_type)
    return SubmissionForm(
        main_id=DocumentItem(
            file=StagedFile.from_path(args.main_id),
            role=args.role,
            category=DocumentCategory.MAIN_ID,
        ),
        additional_ids=[parse_additional_id(value) for value in args.additional_id],
        certificate=DocumentItem(
            file=StagedFile.from_path(args.certificate),
            role="",
            category=certificate_type,
        ),
        certificate_type=certificate_type.value,
        user_email=args.email,
    )


def print_progress(event: ProgressEvent) -> None:
    print(f"[{event.percent:3d}%] {event.state.value}: {event.message}")


def format_identity(identity: IdentityRecord) -> str:
    return (
        f"ID   #{identity.id} [{identity.session_id}] {identity.id_type}: "
        f"{identity.first_name} {identity.last_name} ({identity.id_number}) role={identity.role}"
    )


def format_certificate(certificate: CertificateRecord) -> str:
    return (
        f"CERT #{certificate.id} [{certificate.session_id}] {certificate.cert_type}: "
        f"{certificate.company_name} ({certificate.business_id})"
    )


def format_file(file: UploadedFile) -> str:
    return f"{file.remote_id}\t{file.file_name}\t{file.size}\t{file.last_modified}\t{file.web_url}"


def run_submit(settings: Settings, args: argparse.Namespace) -> int:
    try:
        orchestrator = build_orchestrator(settings, observer=print_progress)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    try:
        result = orchestrator.submit(build_form(args))
    finally:
        orchestrator.close()
    for failure in result.failures:
        print(f"Upload failed for '{failure.original_name}': {failure.error}", file=sys.stderr)
    if not result.succeeded:
        print(f"Submission failed: {result.error}", file=sys.stderr)
        return 1
    print(result.session_id)
    return 0


def run_show(settings: Settings, args: argparse.Namespace) -> int:
    init_pool(settings)
    try:
        service = SessionDocumentsService.from_settings(settings)
        try:
            documents = service.fetch(args.session_id)
        except RecordNotFoundError as exc:
            print(exc, file=sys.stderr)
            return 1
        for identity in documents.identities:
            print(format_identity(identity))
        for certificate in documents.certificates:
            print(format_certificate(certificate))
        if args.approve:
            service.save_all(documents)
    finally:
        close_pool()
    return 0


def run_list(settings: Settings, args: argparse.Namespace) -> int:
    init_pool(settings)
    try:
        service = SessionDocumentsService.from_settings(settings)
        if args.certificates:
            lines = [format_certificate(c) for c in service.list_certificates(args.limit)]
        else:
            lines = [format_identity(i) for i in service.list_identities(args.limit)]
    finally:
        close_pool()
    for line in lines:
        print(line)
    if not lines:
        print("No records found", file=sys.stderr)
    return 0


def run_files(settings: Settings, args: argparse.Namespace) -> int:
    if args.action != "list" and not args.remote_id:
        print(f"'files {args.action}' needs a remote_id", file=sys.stderr)
        return 2
    owner = args.email or settings.user_email
    try:
        backend = UploadBackendFactory.create(settings)
    except (ConfigurationError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    try:
        if args.action == "list":
            for file in backend.list_files(owner, args.folder, args.limit):
                print(format_file(file))
        elif args.action == "info":
            print(format_file(backend.get_file_info(args.remote_id, owner)))
        else:
            backend.delete_file(args.remote_id, owner)
            print(f"Deleted {args.remote_id}")
    except UploadError as exc:
        print(exc, file=sys.stderr)
        return 1
    finally:
        backend.close()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: settings -> logging -> command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    commands = {
        "submit": run_submit,
        "show": run_show,
        "list": run_list,
        "files": run_files,
    }
    return commands[args.command](settings, args)


if __name__ == "__main__":
    sys.exit(main())
