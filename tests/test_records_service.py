"""Tests for the record services."""

import asyncio
from datetime import date

import pytest
from pydantic import ValidationError

from prison_console.services.console import ConsoleSession
from prison_console.domain.forms import ListFilters
from prison_console.domain.session import Facility, Role, Session
from prison_console.errors import BackendError, PermissionDeniedError
from prison_console.services.records import parse_page, scope_filters
from tests.conftest import InMemoryResourceApi

TODAY = date(2025, 6, 15)


def _session(
    role: str = "Officer", *permissions: str, facility_id: int | None = 1
) -> Session:
    return Session(
        user_id=1,
        display_name="Staff",
        username="staff",
        role=Role(name=role, permissions=permissions),
        facility=Facility(id=facility_id) if facility_id is not None else None,
    )


def _api(console: ConsoleSession, resource: str) -> InMemoryResourceApi:
    api = console.record_services[resource].api
    assert isinstance(api, InMemoryResourceApi)
    return api


def test_list_pins_staff_to_their_facility(console: ConsoleSession) -> None:
    service = console.record_services["prisoners"]
    api = _api(console, "prisoners")
    api.records[1] = {"id": 1, "full_name": "Sunil Silva"}

    session = _session("Officer", "view_prisoners", facility_id=4)

    page = asyncio.run(service.list(session, ListFilters()))

    assert api.calls[0] == ("list", {"page": 1, "limit": 10, "prison_id": 4})
    assert page.records == [{"id": 1, "full_name": "Sunil Silva"}]
    assert page.pagination.total_records == 1


def test_list_other_facility_is_denied(console: ConsoleSession) -> None:
    service = console.record_services["prisoners"]

    with pytest.raises(PermissionDeniedError):
        asyncio.run(
            service.list(
                _session("Officer", "view_prisoners", facility_id=4),
                ListFilters(facility_id=5),
            )
        )
    assert _api(console, "prisoners").calls == []


def test_super_admin_is_not_scoped() -> None:
    admin = _session("Super Admin", facility_id=None)

    assert scope_filters(admin, ListFilters()).facility_id is None
    assert scope_filters(admin, ListFilters(facility_id=3)).facility_id == 3


def test_list_requires_view_permission(console: ConsoleSession) -> None:
    service = console.record_services["work-records"]

    with pytest.raises(PermissionDeniedError):
        asyncio.run(service.list(_session("Officer", "view_prisoners"), ListFilters()))


def test_invalid_form_never_reaches_backend(console: ConsoleSession) -> None:
    service = console.record_services["behaviour-records"]
    session = _session("Officer", "record_behaviour")

    with pytest.raises(ValidationError):
        asyncio.run(
            service.create(
                session,
                {
                    "prisoner_id": 3,
                    "behaviour_type": "Positive",
                    "severity_level": "Minor",
                    "incident_date": "2025-06-10",
                    "description": "Helped staff during the kitchen fire drill.",
                    "sentence_adjustment_days": "5",
                },
                today=TODAY,
            )
        )

    assert _api(console, "behaviour-records").calls == []


def test_create_notifies_success(console: ConsoleSession) -> None:
    service = console.record_services["work-records"]
    session = _session("Officer", "record_work")

    record = asyncio.run(
        service.create(
            session,
            {
                "prisoner_id": 3,
                "task_description": "Garden maintenance",
                "work_date": "2025-06-10",
                "hours_worked": 3,
                "payment_amount": 300,
            },
            today=TODAY,
        )
    )

    assert record["id"] == 1
    assert console.notifications.drain()[-1].message == (
        "Work record created successfully"
    )


def test_backend_error_is_notified_and_reraised(console: ConsoleSession) -> None:
    service = console.record_services["visitors"]
    _api(console, "visitors").fail_with = BackendError(400, "NIC already exists")

    with pytest.raises(BackendError):
        asyncio.run(
            service.create(
                _session("Visitor Manager", "manage_visitors"),
                {
                    "visitor_name": "Saman Kumara",
                    "nic": "881234567V",
                    "mobile_number": "0712345678",
                    "address": "No 5, Lake Road, Kurunegala",
                },
            )
        )

    notification = console.notifications.drain()[-1]
    assert notification.level == "error"
    assert notification.message == "NIC already exists"


def test_actions_are_gated(console: ConsoleSession) -> None:
    service = console.record_services["work-records"]
    api = _api(console, "work-records")

    officer = _session("Officer", "record_work")
    approver = _session("Prison Admin", "approve_payment")

    with pytest.raises(PermissionDeniedError):
        asyncio.run(service.perform(officer, 5, "approve-payment"))

    asyncio.run(service.perform(approver, 5, "approve-payment"))
    assert api.calls[-1] == ("action", (5, "approve-payment", None, "POST"))

    with pytest.raises(KeyError):
        asyncio.run(service.perform(approver, 5, "pay"))


def test_visit_status_uses_patch(console: ConsoleSession) -> None:
    service = console.record_services["visits"]
    api = _api(console, "visits")

    asyncio.run(
        service.perform(
            _session("Officer", "approve_visit"),
            8,
            "status",
            {"status": "Completed", "notes": "Visit went fine"},
        )
    )

    assert api.calls[-1] == (
        "action",
        (8, "status", {"status": "Completed", "notes": "Visit went fine"}, "PATCH"),
    )


def test_transfer_payload_is_validated(console: ConsoleSession) -> None:
    service = console.record_services["prisoners"]

    with pytest.raises(ValidationError):
        asyncio.run(
            service.perform(
                _session("Prison Admin", "manage_prisoners"),
                3,
                "transfer",
                {"target_prison_id": 0, "transfer_reason": "Overcrowding"},
            )
        )


def test_stats_scoped_to_facility(console: ConsoleSession) -> None:
    service = console.record_services["work-records"]
    api = _api(console, "work-records")

    asyncio.run(service.stats(_session("Officer", "view_work_records", facility_id=2)))

    assert api.calls[-1] == ("collection_action", ("stats", {"prison_id": 2}))


def test_prison_statistics_need_a_prison(console: ConsoleSession) -> None:
    service = console.record_services["prisons"]
    admin = _session("Super Admin", "view_prisons", facility_id=None)

    with pytest.raises(PermissionDeniedError):
        asyncio.run(service.stats(admin))

    asyncio.run(service.stats(admin, facility_id=6))
    assert _api(console, "prisons").calls[-1] == (
        "action",
        (6, "statistics", None, "GET"),
    )


def test_role_lookup(console: ConsoleSession) -> None:
    service = console.record_services["users"]

    admin = _session("Super Admin", "view_users")

    data = asyncio.run(service.lookup(admin, "roles/dropdown"))

    assert data == {"name": "roles/dropdown", "total": 0}
    with pytest.raises(KeyError):
        asyncio.run(service.lookup(admin, "secrets"))


def test_parse_page_reads_summary() -> None:
    page = parse_page(
        {
            "data": [{"id": 1}],
            "pagination": {"page": 2, "pages": 5, "total": 41},
            "summary": {"total_hours": 12.5},
        },
        ListFilters(),
    )

    assert page.pagination.current_page == 2
    assert page.pagination.total_pages == 5
    assert page.pagination.total_records == 41
    assert page.summary == {"total_hours": 12.5}


def test_parse_page_tolerates_null_pagination() -> None:
    page = parse_page(
        {
            "data": [],
            "pagination": {"page": None, "pages": None, "total": None},
        },
        ListFilters(page=3),
    )

    assert page.records == []
    assert page.pagination.current_page == 3
    assert page.pagination.total_pages == 0
    assert page.pagination.total_records == 0


def test_parse_page_ignores_unreadable_counts() -> None:
    page = parse_page(
        {"data": [{"id": 1}], "pagination": {"page": "2", "total": "many"}},
        ListFilters(),
    )

    assert page.pagination.current_page == 2
    assert page.pagination.total_pages == 1
    assert page.pagination.total_records == 1
