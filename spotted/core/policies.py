"""Row-level authorization policies.

Every read or write of profile, report or evidence data goes through this
module. Predicates are keyed by (resource, operation) and evaluated with the
requester's identity, the row owner's identity and, for reports, the row's
current status.

Reads are handled by ``scope``: it narrows a SELECT to the rows the
requester may see, so rows owned by other identities are simply absent and
look exactly like rows that do not exist. Writes to a visible row are
checked with ``authorize``, which raises ``AuthorizationDenied`` without
saying why.
"""
import logging
from typing import Callable, Optional

from sqlalchemy import Select, false

from spotted.core.constants import Operation, ReportStatus, Resource
from spotted.core.exceptions import AuthorizationDenied

logger = logging.getLogger(__name__)

Predicate = Callable[[Optional[str], Optional[str], Optional[str]], bool]


def _never(requester_id, owner_id, status) -> bool:
    return False


def _always(requester_id, owner_id, status) -> bool:
    return True


def _is_owner(requester_id, owner_id, status) -> bool:
    return requester_id is not None and owner_id is not None and requester_id == owner_id


def _is_owner_and_pending(requester_id, owner_id, status) -> bool:
    return _is_owner(requester_id, owner_id, status) and status == ReportStatus.PENDING.value


POLICIES: dict[tuple[Resource, Operation], Predicate] = {
    # Profiles are inserted by provisioning, never by a client
    (Resource.PROFILE, Operation.SELECT): _is_owner,
    (Resource.PROFILE, Operation.UPDATE): _is_owner,
    (Resource.PROFILE, Operation.INSERT): _never,
    (Resource.PROFILE, Operation.DELETE): _never,
    (Resource.VIOLATION_TYPE, Operation.SELECT): _always,
    (Resource.VIOLATION_TYPE, Operation.INSERT): _never,
    (Resource.VIOLATION_TYPE, Operation.UPDATE): _never,
    (Resource.VIOLATION_TYPE, Operation.DELETE): _never,
    (Resource.REPORT, Operation.SELECT): _is_owner,
    (Resource.REPORT, Operation.INSERT): _is_owner,
    (Resource.REPORT, Operation.UPDATE): _is_owner_and_pending,
    (Resource.REPORT, Operation.DELETE): _never,
    # Evidence owner is the first segment of the object path
    (Resource.EVIDENCE, Operation.SELECT): _is_owner,
    (Resource.EVIDENCE, Operation.INSERT): _is_owner,
    (Resource.EVIDENCE, Operation.UPDATE): _never,
    (Resource.EVIDENCE, Operation.DELETE): _never,
}


def _status_value(status) -> Optional[str]:
    if status is None:
        return None
    return status.value if isinstance(status, ReportStatus) else str(status)


def is_allowed(
    resource: Resource,
    operation: Operation,
    requester_id: Optional[str],
    owner_id: Optional[str] = None,
    status=None,
) -> bool:
    predicate = POLICIES.get((resource, operation), _never)
    return predicate(requester_id, owner_id, _status_value(status))


def authorize(
    resource: Resource,
    operation: Operation,
    requester_id: Optional[str],
    owner_id: Optional[str] = None,
    status=None,
) -> None:
    """Raise ``AuthorizationDenied`` unless the policy allows the operation."""
    if not is_allowed(resource, operation, requester_id, owner_id, status):
        logger.info(
            "Denied %s on %s for requester %s", operation.value, resource.value, requester_id
        )
        raise AuthorizationDenied()


def _owner_column(resource: Resource, entity):
    if resource == Resource.PROFILE:
        return entity.id
    if resource == Resource.REPORT:
        return entity.user_id
    raise ValueError(f"No ownership column for {resource.value}")


def scope(stmt: Select, resource: Resource, requester_id: Optional[str], entity=None) -> Select:
    """Restrict a SELECT to the rows the requester is allowed to read.

    ``entity`` defaults to the statement's first selected entity.
    """
    if POLICIES[(resource, Operation.SELECT)] is _always:
        return stmt
    if requester_id is None:
        return stmt.where(false())
    if entity is None:
        entity = stmt.column_descriptions[0]["entity"]
    return stmt.where(_owner_column(resource, entity) == requester_id)
