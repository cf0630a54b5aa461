"""Permission-gated CRUD over the backend collections."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from pydantic import Field

from prison_console.adapters.resource_api import ResourceApi
from prison_console.domain.forms import (
    BasicDetailsForm,
    BehaviourRecordForm,
    FormModel,
    ListFilters,
    PrisonForm,
    UserForm,
    VisitForm,
    VisitorForm,
    VisitStatus,
    WorkRecordForm,
)
from prison_console.domain.session import Session
from prison_console.errors import PermissionDeniedError
from prison_console.services.notifications import NotificationCenter
from prison_console.services.permissions import (
    can_access_facility,
    can_perform,
    is_super_admin,
)


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_records: int


@dataclass(frozen=True)
class RecordPage:
    """One page of records as returned by a list endpoint."""

    records: list[dict[str, object]]
    pagination: Pagination
    summary: dict[str, object] | None = None


class TransferForm(FormModel):
    target_prison_id: int = Field(gt=0)
    transfer_reason: str = Field(min_length=1, max_length=500)


class VisitStatusForm(FormModel):
    status: VisitStatus
    notes: str = Field(default="", max_length=1000)


class PasswordResetForm(FormModel):
    newPassword: str = Field(min_length=6)  # noqa: N815


class EmptyForm(FormModel):
    pass


@dataclass(frozen=True)
class RecordAction:
    """A record-level backend action and the form guarding its payload."""

    endpoint: str
    form: type[FormModel] = EmptyForm
    method: str = "POST"
    success_message: str | None = None


@dataclass(frozen=True)
class ResourceDefinition:
    """Static description of one backend collection."""

    name: str
    label: str
    form: type[FormModel]
    actions: Mapping[str, RecordAction]
    stats_action: str | None = None
    lookups: tuple[str, ...] = ()


RESOURCES: Mapping[str, ResourceDefinition] = {
    "prisons": ResourceDefinition(
        name="prisons",
        label="Prison",
        form=PrisonForm,
        actions={},
        stats_action="statistics",
    ),
    "users": ResourceDefinition(
        name="users",
        label="User",
        form=UserForm,
        actions={
            "reset-password": RecordAction(
                endpoint="reset-password",
                form=PasswordResetForm,
                success_message="Password reset successfully",
            )
        },
        lookups=("roles/dropdown",),
    ),
    "prisoners": ResourceDefinition(
        name="prisoners",
        label="Prisoner",
        form=BasicDetailsForm,
        actions={
            "release": RecordAction(
                endpoint="release", success_message="Prisoner released successfully"
            ),
            "transfer": RecordAction(
                endpoint="transfer",
                form=TransferForm,
                success_message="Prisoner transferred successfully",
            ),
        },
        stats_action="stats",
    ),
    "work-records": ResourceDefinition(
        name="work-records",
        label="Work record",
        form=WorkRecordForm,
        actions={
            "approve-payment": RecordAction(
                endpoint="approve-payment",
                success_message="Payment approved successfully",
            )
        },
        stats_action="stats",
    ),
    "behaviour-records": ResourceDefinition(
        name="behaviour-records",
        label="Behaviour record",
        form=BehaviourRecordForm,
        actions={
            "approve-adjustment": RecordAction(
                endpoint="approve-adjustment",
                success_message="Sentence adjustment approved",
            ),
            "reject-adjustment": RecordAction(
                endpoint="reject-adjustment",
                success_message="Sentence adjustment rejected",
            ),
        },
    ),
    "visitors": ResourceDefinition(
        name="visitors",
        label="Visitor",
        form=VisitorForm,
        actions={
            "visits": RecordAction(
                endpoint="visits", method="GET"
            )
        },
    ),
    "visits": ResourceDefinition(
        name="visits",
        label="Visit",
        form=VisitForm,
        actions={
            "status": RecordAction(
                endpoint="status",
                form=VisitStatusForm,
                method="PATCH",
                success_message="Visit status updated",
            )
        },
    ),
}


@dataclass
class RecordService:
    """CRUD for one collection: validate, gate, call, notify."""

    definition: ResourceDefinition
    api: ResourceApi
    notifications: NotificationCenter

    async def list(
        self, session: Session | None, filters: ListFilters
    ) -> RecordPage:
        """Return one page of records visible to the session."""
        self._require(session, "view")
        scoped = scope_filters(session, filters)
        try:
            response = await self.api.list(scoped.to_params())
        except Exception as exc:
            self.notifications.failure(exc, f"Failed to load {self.definition.name}")
            raise
        return parse_page(response, scoped)

    async def get(self, session: Session | None, record_id: int) -> dict[str, object]:
        self._require(session, "view")
        try:
            response = await self.api.get(record_id)
        except Exception as exc:
            self.notifications.failure(
                exc, f"Failed to load {self.definition.label.lower()}"
            )
            raise
        return _data_dict(response)

    async def create(
        self,
        session: Session | None,
        data: Mapping[str, object],
        today: date | None = None,
    ) -> dict[str, object]:
        """Validate ``data`` and create the record."""
        self._require(session, "create")
        form = self._validate(self.definition.form, data, today)
        try:
            response = await self.api.create(form.to_payload())
        except Exception as exc:
            self.notifications.failure(
                exc, f"Failed to create {self.definition.label.lower()}"
            )
            raise
        self.notifications.success(f"{self.definition.label} created successfully")
        return _data_dict(response)

    async def update(
        self,
        session: Session | None,
        record_id: int,
        data: Mapping[str, object],
        today: date | None = None,
    ) -> dict[str, object]:
        """Validate ``data`` and update the record."""
        self._require(session, "update")
        form = self._validate(self.definition.form, data, today)
        try:
            response = await self.api.update(record_id, form.to_payload())
        except Exception as exc:
            self.notifications.failure(
                exc, f"Failed to update {self.definition.label.lower()}"
            )
            raise
        self.notifications.success(f"{self.definition.label} updated successfully")
        return _data_dict(response)

    async def delete(self, session: Session | None, record_id: int) -> None:
        self._require(session, "delete")
        try:
            await self.api.delete(record_id)
        except Exception as exc:
            self.notifications.failure(
                exc, f"Failed to delete {self.definition.label.lower()}"
            )
            raise
        self.notifications.success(f"{self.definition.label} deleted successfully")

    async def perform(
        self,
        session: Session | None,
        record_id: int,
        action: str,
        data: Mapping[str, object] | None = None,
    ) -> object:
        """Run a record-level action such as approving a payment."""
        record_action = self.definition.actions.get(action)
        if record_action is None:
            raise KeyError(action)
        self._require(session, action)
        form = self._validate(record_action.form, data or {}, None)
        payload = form.to_payload() or None
        try:
            response = await self.api.action(
                record_id, record_action.endpoint, payload, method=record_action.method
            )
        except Exception as exc:
            self.notifications.failure(exc, f"Failed to {action.replace('-', ' ')}")
            raise
        if record_action.success_message:
            self.notifications.success(record_action.success_message)
        return response.get("data")

    async def stats(
        self, session: Session | None, facility_id: int | None = None
    ) -> dict[str, object]:
        """Return collection statistics, scoped to the session's facility."""
        if self.definition.stats_action is None:
            raise KeyError("stats")
        self._require(session, self.definition.stats_action)
        scoped = scope_filters(session, ListFilters(facility_id=facility_id))
        if self.definition.stats_action == "statistics" and scoped.facility_id is None:
            raise PermissionDeniedError("Choose a prison to view statistics")
        try:
            if self.definition.stats_action == "statistics":
                response = await self.api.action(
                    scoped.facility_id, "statistics", method="GET"
                )
            else:
                params = {"prison_id": scoped.facility_id}
                response = await self.api.collection_action(
                    self.definition.stats_action, params
                )
        except Exception as exc:
            self.notifications.failure(exc, "Failed to load statistics")
            raise
        return _data_dict(response)

    async def lookup(self, session: Session | None, name: str) -> object:
        """Fetch a read-only helper list such as the role dropdown."""
        if name not in self.definition.lookups:
            raise KeyError(name)
        self._require(session, "view")
        try:
            response = await self.api.collection_action(name)
        except Exception as exc:
            self.notifications.failure(exc, "Failed to load options")
            raise
        return response.get("data")

    def _require(self, session: Session | None, action: str) -> None:
        if not can_perform(session, self.definition.name, action):
            raise PermissionDeniedError(
                f"You do not have permission to {action.replace('-', ' ')} "
                f"{self.definition.name.replace('-', ' ')}"
            )

    def _validate(
        self,
        form: type[FormModel],
        data: Mapping[str, object],
        today: date | None,
    ) -> FormModel:
        context = {"today": today} if today else None
        return form.model_validate(dict(data), context=context)


def scope_filters(session: Session | None, filters: ListFilters) -> ListFilters:
    """Pin non-Super-Admin staff to their own facility."""
    if filters.facility_id is not None:
        if not can_access_facility(session, filters.facility_id):
            raise PermissionDeniedError("You cannot access records of that prison")
        return filters
    if is_super_admin(session) or session is None or session.facility is None:
        return filters
    return filters.model_copy(update={"facility_id": session.facility.id})


def parse_page(response: dict[str, object], filters: ListFilters) -> RecordPage:
    """Read records, pagination and the optional summary from a list response."""
    raw_records = response.get("data")
    records = (
        [record for record in raw_records if isinstance(record, dict)]
        if isinstance(raw_records, list)
        else []
    )
    raw_pagination = response.get("pagination")
    pagination_data = raw_pagination if isinstance(raw_pagination, dict) else {}
    total_records = _count(pagination_data.get("total"), len(records))
    pagination = Pagination(
        current_page=_count(pagination_data.get("page"), filters.page),
        total_pages=_count(pagination_data.get("pages"), 1 if records else 0),
        total_records=total_records,
    )
    summary = response.get("summary")
    return RecordPage(
        records=records,
        pagination=pagination,
        summary=summary if isinstance(summary, dict) else None,
    )


def _count(value: object, default: int) -> int:
    # Backends send null or "" for pagination fields on empty result sets.
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _data_dict(response: dict[str, object]) -> dict[str, object]:
    data = response.get("data")
    return data if isinstance(data, dict) else {}


def build_record_services(
    apis: Mapping[str, ResourceApi], notifications: NotificationCenter
) -> dict[str, RecordService]:
    """Create one service per configured resource."""
    return {
        name: RecordService(
            definition=definition, api=apis[name], notifications=notifications
        )
        for name, definition in RESOURCES.items()
    }
