"""
Import templates: canonical headers plus one sample row per record type.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from records_interchange.core.vocabulary import RecordType

SAMPLE_RECORDS: dict[RecordType, dict[str, Any]] = {
    RecordType.MEMBER: {
        "name": "홍길동",
        "phone": "010-1234-5678",
        "email": "hong@example.com",
        "birthDate": date(1990, 1, 1),
        "address": "서울시 강남구",
        "gender": "MALE",
        "maritalStatus": "MARRIED",
        "baptismDate": date(2020, 1, 1),
        "confirmationDate": date(2020, 6, 1),
        "positionName": "집사",
        "departmentName": "남선교회",
        "familyId": "FAM001",
        "relationship": "HEAD",
        "status": "ACTIVE",
        "notes": "특이사항 없음",
    },
    RecordType.CONTRIBUTION: {
        "memberName": "홍길동",
        "amount": Decimal("100000"),
        "offeringType": "TITHE",
        "description": "2024년 1월 십일조",
        "offeringDate": date(2024, 1, 7),
    },
    RecordType.ATTENDANCE: {
        "memberName": "홍길동",
        "serviceType": "SUNDAY_MORNING",
        "attendanceDate": date(2024, 1, 7),
        "isPresent": True,
        "notes": "",
    },
    RecordType.VISITATION: {
        "memberName": "홍길동",
        "visitDate": date(2024, 1, 15),
        "purpose": "안부 확인",
        "content": "건강하게 지내고 계심",
        "followUpNeeded": False,
        "followUpDate": None,
    },
    RecordType.EXPENSE_REPORT: {
        "title": "교회 전기요금",
        "description": "2024년 1월 전기요금 납부",
        "amount": Decimal("150000"),
        "category": "공과금",
        "status": "PENDING",
        "requestDate": date(2024, 1, 15),
    },
    RecordType.ORGANIZATION: {
        "code": "YOUTH_1",
        "name": "청년1부",
        "level": "LEVEL_2",
        "parentCode": "YOUTH",
        "description": "청년부 소속 1부",
        "phone": "02-123-4567",
        "managerName": "홍길동",
        "isActive": True,
    },
}


def template_filename(record_type: RecordType) -> str:
    return f"{record_type.label}_템플릿.xlsx"
