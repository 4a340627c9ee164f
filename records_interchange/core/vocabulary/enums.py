"""
Bidirectional enumeration vocabularies.

Each vocabulary maps a canonical code to its display label and to the set of
aliases accepted on import. The schema validator parses through the same
object the formatter renders through, so an exported label always re-imports
to the code it came from. Booleans are vocabularies whose codes are True/False.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Hashable


def _token(value: Any) -> str:
    return re.sub(r"\s+", "", str(value)).lower()


@dataclass(frozen=True)
class EnumEntry:
    """One canonical code with its label and accepted aliases."""

    code: Hashable
    label: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class EnumVocabulary:
    """
    Bidirectional mapping: canonical code <-> accepted aliases <-> label.

    Attributes:
        name: Registry key (e.g. "member.gender")
        entries: Entries in display order
    """

    name: str
    entries: tuple[EnumEntry, ...]
    _by_token: dict[str, Hashable] = field(init=False, repr=False, compare=False)
    _labels: dict[Hashable, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_token: dict[str, Hashable] = {}
        labels: dict[Hashable, str] = {}
        for entry in self.entries:
            labels[entry.code] = entry.label
            for alias in (str(entry.code), entry.label, *entry.aliases):
                existing = by_token.get(_token(alias))
                if existing is not None and existing != entry.code:
                    raise ValueError(
                        f"Alias '{alias}' of {self.name} maps to both {existing} and {entry.code}"
                    )
                by_token[_token(alias)] = entry.code
        object.__setattr__(self, "_by_token", by_token)
        object.__setattr__(self, "_labels", labels)

    @property
    def codes(self) -> list[Hashable]:
        return [entry.code for entry in self.entries]

    def parse(self, value: Any) -> Hashable:
        """
        Resolve a value (code, label or alias) to its canonical code.

        Raises:
            ValueError: If the value is not part of the vocabulary
        """
        if isinstance(value, bool) and value in self._labels:
            return value
        code = self._by_token.get(_token(value))
        if code is None:
            accepted = ", ".join(entry.label for entry in self.entries)
            raise ValueError(f"'{value}' is not an accepted value (accepted: {accepted})")
        return code

    def label_for(self, code: Hashable) -> str:
        """Return the display label of a canonical code (unknown codes pass through)."""
        return self._labels.get(code, str(code))

    def __contains__(self, value: Any) -> bool:
        try:
            self.parse(value)
        except ValueError:
            return False
        return True


# Tokens accepted for every boolean field, in both languages
TRUE_TOKENS = ("true", "1", "yes", "y", "예", "네", "참", "o", "ok")
FALSE_TOKENS = ("false", "0", "no", "n", "아니오", "아니요", "거짓", "x")


def boolean_vocabulary(name: str, true_label: str = "예", false_label: str = "아니오") -> EnumVocabulary:
    """Build a boolean vocabulary with field-specific labels on top of the shared tokens."""
    return EnumVocabulary(
        name=name,
        entries=(
            EnumEntry(True, true_label, TRUE_TOKENS),
            EnumEntry(False, false_label, FALSE_TOKENS),
        ),
    )


BOOLEAN = boolean_vocabulary("boolean")

VOCABULARIES: dict[str, EnumVocabulary] = {
    vocabulary.name: vocabulary
    for vocabulary in (
        BOOLEAN,
        EnumVocabulary("member.gender", (
            EnumEntry("MALE", "남", ("남자", "male", "m")),
            EnumEntry("FEMALE", "여", ("여자", "female", "f")),
        )),
        EnumVocabulary("member.maritalStatus", (
            EnumEntry("SINGLE", "미혼", ("single",)),
            EnumEntry("MARRIED", "기혼", ("married",)),
            EnumEntry("DIVORCED", "이혼", ("divorced",)),
            EnumEntry("WIDOWED", "사별", ("widowed",)),
        )),
        EnumVocabulary("member.relationship", (
            EnumEntry("HEAD", "가장", ("세대주",)),
            EnumEntry("SPOUSE", "배우자", ()),
            EnumEntry("CHILD", "자녀", ()),
            EnumEntry("PARENT", "부모", ()),
            EnumEntry("OTHER", "기타", ()),
        )),
        EnumVocabulary("member.status", (
            EnumEntry("ACTIVE", "활동", ("활동중",)),
            EnumEntry("INACTIVE", "비활동", ()),
            EnumEntry("TRANSFERRED", "이전", ("전출",)),
            EnumEntry("DECEASED", "소천", ()),
        )),
        EnumVocabulary("contribution.offeringType", (
            EnumEntry("TITHE", "십일조", ()),
            EnumEntry("THANKSGIVING", "감사", ("감사헌금",)),
            EnumEntry("MISSION", "선교", ("선교헌금",)),
            EnumEntry("BUILDING", "건축", ("건축헌금",)),
            EnumEntry("OTHER", "기타", ("기타헌금",)),
        )),
        EnumVocabulary("attendance.serviceType", (
            EnumEntry("SUNDAY_MORNING", "주일오전예배", ("주일예배", "주일1부")),
            EnumEntry("SUNDAY_EVENING", "주일오후예배", ("주일저녁예배",)),
            EnumEntry("WEDNESDAY", "수요예배", ()),
            EnumEntry("FRIDAY_PRAYER", "금요기도회", ()),
            EnumEntry("DAWN_PRAYER", "새벽기도회", ()),
        )),
        EnumVocabulary("expense_report.status", (
            EnumEntry("PENDING", "대기중", ("대기",)),
            EnumEntry("APPROVED", "승인", ()),
            EnumEntry("REJECTED", "거부", ("반려",)),
        )),
        EnumVocabulary("organization.level", (
            EnumEntry("LEVEL_1", "1단계", ("1",)),
            EnumEntry("LEVEL_2", "2단계", ("2",)),
            EnumEntry("LEVEL_3", "3단계", ("3",)),
            EnumEntry("LEVEL_4", "4단계", ("4",)),
        )),
        boolean_vocabulary("attendance.isPresent", "출석", "결석"),
        boolean_vocabulary("visitation.followUpNeeded", "필요", "불필요"),
        boolean_vocabulary("organization.isActive", "활성", "비활성"),
    )
}


def get_vocabulary(name: str) -> EnumVocabulary:
    """
    Look up a registered vocabulary.

    Raises:
        KeyError: If no vocabulary with that name exists
    """
    try:
        return VOCABULARIES[name]
    except KeyError:
        raise KeyError(f"Unknown vocabulary: {name}") from None
