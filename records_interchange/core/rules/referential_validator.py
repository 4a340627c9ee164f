"""
ReferentialValidator: cross-entity and cross-field checks for one run.

Resolves name-based references against the ValidationContext, detects
duplicate-key collisions (against existing records and within the file),
and enforces temporal ordering between date fields. Violations are returned
as ImportRowError lists; nothing here raises for a bad row.
"""

from datetime import date
from typing import Any, Callable

from records_interchange.core.models import DuplicateMode, ImportRowError, ValidationContext, lookup_key
from records_interchange.core.vocabulary import RecordType
from records_interchange.observability.metrics import record_validation_failure
from records_interchange.utils.coercion import is_blank

MAX_AGE_YEARS = 120

# (earlier field, later field, strict, message) pairs checked per record type
ORDERING_RULES: dict[RecordType, list[tuple[str, str, bool, str]]] = {
    RecordType.MEMBER: [
        ("baptismDate", "confirmationDate", False, "Confirmation date must not precede baptism date"),
    ],
    RecordType.VISITATION: [
        ("visitDate", "followUpDate", True, "Follow-up date must be after the visit date"),
    ],
    RecordType.EXPENSE_REPORT: [
        ("requestDate", "approvedDate", False, "Approval date must not precede the request date"),
        ("requestDate", "rejectedDate", False, "Rejection date must not precede the request date"),
    ],
}


def age_on(birth_date: date, today: date) -> int:
    """Full years between birth_date and today."""
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


class ReferentialValidator:
    """
    Resolves references and detects conflicts for the rows of one run.

    The instance remembers keys seen in earlier rows, so one validator must be
    used per file/sheet, feeding rows in file order.
    """

    def __init__(
        self,
        record_type: RecordType,
        context: ValidationContext,
        duplicate_mode: DuplicateMode = DuplicateMode.CREATE_ONLY,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize referential validator.

        Args:
            record_type: Record type of the rows
            context: Snapshot of existing reference data
            duplicate_mode: Existing-record collisions are errors only in create-only mode
            today: Reference date provider for age checks
        """
        self.record_type = record_type
        self.context = context
        self.duplicate_mode = duplicate_mode
        self.today = today
        self._seen_emails: dict[str, int] = {}
        self._seen_codes: dict[str, int] = {}
        self._seen_names: dict[str, int] = {}

    def validate(self, row: int, values: dict[str, Any]) -> tuple[dict[str, Any], list[ImportRowError]]:
        """
        Check one row.

        Args:
            row: 1-based data row number
            values: Row values after schema validation

        Returns:
            Tuple of (values with resolved identifiers, errors)
        """
        resolved = dict(values)
        errors: list[ImportRowError] = []

        self._resolve_references(row, resolved, errors)
        self._check_duplicates(row, resolved, errors)
        self._check_ordering(row, resolved, errors)
        if self.record_type is RecordType.MEMBER:
            self._check_age(row, resolved, errors)

        for error in errors:
            record_validation_failure(self.record_type.value, "referential", error.field or "")
        return resolved, errors

    def _resolve_references(self, row: int, values: dict[str, Any], errors: list[ImportRowError]) -> None:
        member_name = values.get("memberName")
        if self.record_type in (RecordType.CONTRIBUTION, RecordType.ATTENDANCE, RecordType.VISITATION) \
                and not is_blank(member_name):
            member = self.context.find_member_by_name(member_name)
            if member is None:
                errors.append(ImportRowError(
                    row=row, field="memberName",
                    message=f"Member not found: {member_name}", value=member_name,
                ))
            else:
                values["memberId"] = member.id

        if self.record_type is RecordType.MEMBER:
            position_name = values.get("positionName")
            if not is_blank(position_name):
                position = self.context.find_position(position_name)
                if position is None:
                    errors.append(ImportRowError(
                        row=row, field="positionName",
                        message=f"Position not found: {position_name}", value=position_name,
                    ))
                else:
                    values["positionId"] = position.id

            department_name = values.get("departmentName")
            if not is_blank(department_name):
                department = self.context.find_department(department_name)
                if department is None:
                    errors.append(ImportRowError(
                        row=row, field="departmentName",
                        message=f"Department not found: {department_name}", value=department_name,
                    ))
                else:
                    values["departmentId"] = department.id

        if self.record_type is RecordType.ORGANIZATION:
            parent_code = values.get("parentCode")
            if not is_blank(parent_code):
                parent = self.context.find_organization(parent_code)
                if parent is not None:
                    values["parentId"] = parent.id
                elif lookup_key(parent_code) not in self._seen_codes:
                    # Parents listed earlier in the same file are resolved at persistence time
                    errors.append(ImportRowError(
                        row=row, field="parentCode",
                        message=f"Parent organization not found: {parent_code}", value=parent_code,
                    ))

    def _check_duplicates(self, row: int, values: dict[str, Any], errors: list[ImportRowError]) -> None:
        allow_existing = self.duplicate_mode is not DuplicateMode.CREATE_ONLY

        if self.record_type is RecordType.MEMBER:
            email = values.get("email")
            if isinstance(email, str) and email.strip():
                key = lookup_key(email)
                first_row = self._seen_emails.get(key)
                if first_row is not None:
                    errors.append(ImportRowError(
                        row=row, field="email",
                        message=f"Duplicate email in file (first seen on row {first_row})", value=email,
                    ))
                else:
                    self._seen_emails[key] = row
                    existing = self.context.find_member_by_email(email)
                    if existing is not None and not allow_existing:
                        errors.append(ImportRowError(
                            row=row, field="email",
                            message=f"Email already registered to {existing.name}", value=email,
                        ))
            if not allow_existing and not any(error.field == "email" for error in errors):
                self._check_member_name(row, values.get("name"), errors)

        if self.record_type is RecordType.ORGANIZATION:
            code = values.get("code")
            if isinstance(code, str) and code.strip():
                key = lookup_key(code)
                first_row = self._seen_codes.get(key)
                if first_row is not None:
                    errors.append(ImportRowError(
                        row=row, field="code",
                        message=f"Duplicate organization code in file (first seen on row {first_row})", value=code,
                    ))
                else:
                    self._seen_codes[key] = row
                    if self.context.find_organization(code) is not None and not allow_existing:
                        errors.append(ImportRowError(
                            row=row, field="code",
                            message=f"Organization code already exists: {code}", value=code,
                        ))

    def _check_member_name(self, row: int, name: Any, errors: list[ImportRowError]) -> None:
        """Name collisions matter only when every row must become a new member."""
        if not isinstance(name, str) or not name.strip():
            return
        key = lookup_key(name)
        first_row = self._seen_names.get(key)
        if first_row is not None:
            errors.append(ImportRowError(
                row=row, field="name",
                message=f"Duplicate member name in file (first seen on row {first_row})", value=name,
            ))
            return
        self._seen_names[key] = row
        if self.context.find_member_by_name(name) is not None:
            errors.append(ImportRowError(
                row=row, field="name",
                message=f"A member named {name.strip()} already exists", value=name,
            ))

    def _check_ordering(self, row: int, values: dict[str, Any], errors: list[ImportRowError]) -> None:
        for earlier_field, later_field, strict, message in ORDERING_RULES.get(self.record_type, []):
            earlier = values.get(earlier_field)
            later = values.get(later_field)
            if not isinstance(earlier, date) or not isinstance(later, date):
                continue
            if later < earlier or (strict and later == earlier):
                errors.append(ImportRowError(row=row, field=later_field, message=message, value=later))

    def _check_age(self, row: int, values: dict[str, Any], errors: list[ImportRowError]) -> None:
        birth_date = values.get("birthDate")
        if not isinstance(birth_date, date):
            return
        age = age_on(birth_date, self.today())
        if age < 0 or age > MAX_AGE_YEARS:
            errors.append(ImportRowError(
                row=row, field="birthDate",
                message=f"Age must be between 0 and {MAX_AGE_YEARS} (got {age})", value=birth_date,
            ))
