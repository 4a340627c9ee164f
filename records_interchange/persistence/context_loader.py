"""
Builds the per-run ValidationContext snapshot from a RecordStore.
"""

from records_interchange.core.models import MemberRef, NamedRef, OrganizationRef, ValidationContext
from records_interchange.core.vocabulary import RecordType
from records_interchange.observability.logger import get_logger

from .store import RecordStore

logger = get_logger(__name__)


async def load_validation_context(store: RecordStore) -> ValidationContext:
    """
    Fetch members, positions, departments and organizations once.

    Args:
        store: Record store to read from

    Returns:
        ValidationContext snapshot
    """
    members = await store.fetch_records(RecordType.MEMBER)
    organizations = await store.fetch_records(RecordType.ORGANIZATION)
    positions = await store.fetch_positions()
    departments = await store.fetch_departments()

    context = ValidationContext(
        members=[
            MemberRef(id=str(record["id"]), name=str(record.get("name") or ""), email=record.get("email"))
            for record in members
        ],
        positions=[NamedRef(id=str(item["id"]), name=str(item["name"])) for item in positions],
        departments=[NamedRef(id=str(item["id"]), name=str(item["name"])) for item in departments],
        organizations=[
            OrganizationRef(
                id=str(record["id"]),
                code=str(record.get("code") or ""),
                name=str(record.get("name") or record.get("code") or ""),
                parent_id=record.get("parentId"),
            )
            for record in organizations
        ],
    )
    logger.debug(
        "Loaded validation context",
        extra={
            "members": len(context.members),
            "positions": len(context.positions),
            "departments": len(context.departments),
            "organizations": len(context.organizations),
        },
    )
    return context
