"""
ValidationContext: the read-only snapshot of reference data used for
cross-row checks during one pipeline run.
"""

import re
from functools import cached_property
from typing import Any, Iterable

from pydantic import BaseModel, Field

from records_interchange.core.vocabulary import RecordType


def lookup_key(value: Any) -> str:
    """Case-insensitive, whitespace-collapsed key used for name/email matching."""
    return re.sub(r"\s+", " ", str(value)).strip().casefold()


class MemberRef(BaseModel):
    id: str
    name: str
    email: str | None = None


class NamedRef(BaseModel):
    id: str
    name: str


class OrganizationRef(BaseModel):
    id: str
    code: str
    name: str
    parent_id: str | None = None


class ValidationContext(BaseModel):
    """
    Snapshot of existing reference data, fetched once per run.

    Note: the snapshot is never mutated while a run is in progress;
    with_pending() returns a new instance.

    Attributes:
        members: Existing members (id, name, email)
        positions: Position catalogue (id, name)
        departments: Department catalogue (id, name)
        organizations: Existing organizations (id, code, name, parent_id)
    """

    members: list[MemberRef] = Field(default_factory=list)
    positions: list[NamedRef] = Field(default_factory=list)
    departments: list[NamedRef] = Field(default_factory=list)
    organizations: list[OrganizationRef] = Field(default_factory=list)

    class Config:
        frozen = True

    @cached_property
    def members_by_name(self) -> dict[str, MemberRef]:
        index: dict[str, MemberRef] = {}
        for member in self.members:
            index.setdefault(lookup_key(member.name), member)
        return index

    @cached_property
    def members_by_email(self) -> dict[str, MemberRef]:
        return {
            lookup_key(member.email): member
            for member in reversed(self.members)
            if member.email
        }

    @cached_property
    def positions_by_name(self) -> dict[str, NamedRef]:
        return {lookup_key(item.name): item for item in reversed(self.positions)}

    @cached_property
    def departments_by_name(self) -> dict[str, NamedRef]:
        return {lookup_key(item.name): item for item in reversed(self.departments)}

    @cached_property
    def organizations_by_code(self) -> dict[str, OrganizationRef]:
        return {lookup_key(item.code): item for item in reversed(self.organizations)}

    def find_member_by_name(self, name: Any) -> MemberRef | None:
        return self.members_by_name.get(lookup_key(name))

    def find_member_by_email(self, email: Any) -> MemberRef | None:
        return self.members_by_email.get(lookup_key(email))

    def find_position(self, name: Any) -> NamedRef | None:
        return self.positions_by_name.get(lookup_key(name))

    def find_department(self, name: Any) -> NamedRef | None:
        return self.departments_by_name.get(lookup_key(name))

    def find_organization(self, code: Any) -> OrganizationRef | None:
        return self.organizations_by_code.get(lookup_key(code))

    def with_pending(
        self, record_type: RecordType, records: Iterable[dict[str, Any]]
    ) -> "ValidationContext":
        """
        Return a new snapshot extended with records staged earlier in the same run.

        Records without an "id" (not persisted yet, e.g. during preview) get a
        placeholder identifier. Records whose id is already known are not added twice.

        Args:
            record_type: Type of the staged records (only members and organizations matter)
            records: Staged records keyed by canonical field names

        Returns:
            Extended ValidationContext
        """
        if record_type is RecordType.MEMBER:
            known = {member.id for member in self.members}
            added = []
            for position, record in enumerate(records):
                record_id = str(record.get("id") or f"pending-member-{len(self.members) + position + 1}")
                if record_id in known or not record.get("name"):
                    continue
                known.add(record_id)
                added.append(MemberRef(id=record_id, name=record["name"], email=record.get("email")))
            return ValidationContext(
                members=[*self.members, *added],
                positions=self.positions,
                departments=self.departments,
                organizations=self.organizations,
            )

        if record_type is RecordType.ORGANIZATION:
            known = {organization.id for organization in self.organizations}
            added_orgs = []
            for position, record in enumerate(records):
                record_id = str(record.get("id") or f"pending-organization-{len(self.organizations) + position + 1}")
                if record_id in known or not record.get("code"):
                    continue
                known.add(record_id)
                added_orgs.append(OrganizationRef(
                    id=record_id,
                    code=record["code"],
                    name=record.get("name") or record["code"],
                    parent_id=record.get("parentId"),
                ))
            return ValidationContext(
                members=self.members,
                positions=self.positions,
                departments=self.departments,
                organizations=[*self.organizations, *added_orgs],
            )

        return self
