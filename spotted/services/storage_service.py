"""Evidence photo storage.

Objects live under ``<EVIDENCE_DIR>/<identity-id>/<name>``; the first path
segment is the owner and is what the evidence policy checks. Names are
generated per upload, so one identity can never write into, or overwrite,
another identity's namespace.
"""
import logging
import re
import time
import uuid
from pathlib import Path
from typing import BinaryIO

from spotted.core import policies
from spotted.core.config import settings
from spotted.core.constants import ALLOWED_EVIDENCE_EXTENSIONS, Operation, Resource
from spotted.core.exceptions import RecordNotFound, StorageUnavailable, ValidationFailed

logger = logging.getLogger(__name__)

_OBJECT_NAME = re.compile(r"^\d+-[0-9a-f]{8}\.[a-z0-9]+$")
_OWNER_ID = re.compile(r"^[0-9a-fA-F-]{1,36}$")


def _root() -> Path:
    return Path(settings.EVIDENCE_DIR)


def evidence_extension(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_EVIDENCE_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_EVIDENCE_EXTENSIONS))
        raise ValidationFailed("file", f"Unsupported file type. Allowed: {allowed}", "INVALID_FILE_TYPE")
    return ext


def object_name(filename: str) -> str:
    """Unique per-upload name: ``<epoch-millis>-<token>.<ext>``."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{evidence_extension(filename)}"


def evidence_url(path: str) -> str:
    return f"{settings.EVIDENCE_BASE_URL.rstrip('/')}/{path}"


def _max_upload_bytes() -> int:
    return settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024


def _too_large() -> ValidationFailed:
    return ValidationFailed(
        "file", f"File too large. Max: {settings.MAX_UPLOAD_SIZE_MB} MB.", "FILE_TOO_LARGE"
    )


def check_upload_size(file: BinaryIO) -> None:
    """Reject an upload over MAX_UPLOAD_SIZE_MB before any of it is read."""
    file.seek(0, 2)  # seek to end
    size = file.tell()
    file.seek(0)
    if size > _max_upload_bytes():
        raise _too_large()


def save_evidence(requester_id: str, filename: str, content: bytes) -> str:
    """Store an upload in the requester's namespace and return its path."""
    policies.authorize(Resource.EVIDENCE, Operation.INSERT, requester_id, requester_id)

    if len(content) > _max_upload_bytes():
        raise _too_large()
    if not content:
        raise ValidationFailed("file", "File is empty", "EMPTY_FILE")

    name = object_name(filename)
    target = _root() / requester_id / name
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "xb") as f:
            f.write(content)
    except OSError as e:
        logger.error("Evidence write failed for %s: %s", target, e)
        raise StorageUnavailable("Evidence storage is unavailable") from e

    path = f"{requester_id}/{name}"
    logger.info("Stored evidence %s (%d bytes)", path, len(content))
    return path


def resolve_evidence(requester_id: str, owner_id: str, name: str) -> Path:
    """Path of a stored object the requester may read; missing otherwise."""
    if not policies.is_allowed(Resource.EVIDENCE, Operation.SELECT, requester_id, owner_id):
        raise RecordNotFound("Evidence")
    if not _OWNER_ID.match(owner_id) or not _OBJECT_NAME.match(name):
        raise RecordNotFound("Evidence")

    target = _root() / owner_id / name
    if not target.is_file():
        raise RecordNotFound("Evidence")
    return target
