"""Multi-step prisoner registration and editing."""

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date

from prison_console.adapters.prisoner_api import PrisonerApi
from prison_console.domain.forms import (
    BasicDetailsForm,
    BodyMarkForm,
    FamilyMemberForm,
    PhotoType,
    PhotoUpload,
)
from prison_console.domain.session import Permission, Session
from prison_console.domain.wizard import (
    DraftCollection,
    DraftItem,
    New,
    WizardMode,
    WizardStep,
)
from prison_console.errors import PermissionDeniedError, WizardStateError
from prison_console.services.notifications import NotificationCenter
from prison_console.services.permissions import (
    can_access_facility,
    is_granted,
    is_super_admin,
)

logger = logging.getLogger(__name__)

# Form field -> backend prisoner field.
_BASIC_DETAIL_FIELDS = {
    "full_name": "fullName",
    "nic": "nic",
    "case_number": "caseNumber",
    "gender": "gender",
    "birthday": "birthday",
    "nationality": "nationality",
    "admission_date": "admissionDate",
    "expected_release_date": "expectedReleaseDate",
    "cell_number": "cellNumber",
    "social_status": "socialStatus",
}
_DATE_FIELDS = {"birthday", "admission_date", "expected_release_date"}


@dataclass(frozen=True)
class StoredPhoto:
    """A photo already held by the backend."""

    photo_type: str
    url: str | None = None


PhotoDraft = PhotoUpload | StoredPhoto


@dataclass(frozen=True)
class StepOutcome:
    """Result of submitting a step."""

    success: bool
    step: WizardStep
    message: str | None = None

    @property
    def completed(self) -> bool:
        return self.step is WizardStep.COMPLETE


@dataclass
class PrisonerWizard:
    """Draft of a prisoner and its photos, body marks and family members.

    Dependent items are submitted one awaited call at a time; the first
    failure stops the step, earlier successes are kept and the step only
    advances once nothing is left pending. Only one backend-touching
    operation runs at a time; an overlapping call is rejected.
    """

    api: PrisonerApi
    notifications: NotificationCenter
    mode: WizardMode
    owner_id: int | None = None
    step: WizardStep = WizardStep.BASIC_DETAILS
    prisoner_id: int | None = None
    basic_details: dict[str, object] = field(default_factory=dict)
    photos: DraftCollection[PhotoDraft] = field(default_factory=DraftCollection)
    body_marks: DraftCollection[BodyMarkForm] = field(default_factory=DraftCollection)
    family_members: DraftCollection[FamilyMemberForm] = field(
        default_factory=DraftCollection
    )
    last_error: str | None = None
    _busy: asyncio.Lock = field(
        default_factory=asyncio.Lock, init=False, repr=False, compare=False
    )

    @classmethod
    def create(
        cls,
        session: Session | None,
        api: PrisonerApi,
        notifications: NotificationCenter,
    ) -> "PrisonerWizard":
        """Open an empty registration draft."""
        operator = _require_manage(session, "add prisoners")
        return cls(
            api=api,
            notifications=notifications,
            mode=WizardMode.CREATE,
            owner_id=operator.user_id,
        )

    @classmethod
    async def edit(
        cls,
        session: Session | None,
        api: PrisonerApi,
        notifications: NotificationCenter,
        prisoner_id: int,
    ) -> "PrisonerWizard":
        """Open a draft seeded from the persisted prisoner."""
        operator = _require_manage(session, "edit prisoners")
        wizard = cls(
            api=api,
            notifications=notifications,
            mode=WizardMode.EDIT,
            owner_id=operator.user_id,
            prisoner_id=prisoner_id,
        )
        prisoner = await wizard._load_prisoner()
        facility_id = _prisoner_facility(prisoner)
        if facility_id is None:
            # A prisoner with no resolvable prison is only editable globally.
            if not is_super_admin(operator):
                raise PermissionDeniedError("You cannot edit prisoners of that prison")
        elif not can_access_facility(operator, facility_id):
            raise PermissionDeniedError("You cannot edit prisoners of that prison")
        wizard.basic_details = _basic_details(prisoner, facility_id)
        wizard._seed_photos(prisoner)
        wizard._seed_body_marks(prisoner)
        wizard._seed_family_members(prisoner)
        return wizard

    async def submit_basic_details(
        self, data: Mapping[str, object], today: date | None = None
    ) -> StepOutcome:
        """Create (or update) the prisoner and move to the photos step."""
        self._expect(WizardStep.BASIC_DETAILS)
        context = {"today": today} if today else None
        form = BasicDetailsForm.model_validate(dict(data), context=context)
        payload = form.to_payload()
        async with self._exclusive(WizardStep.BASIC_DETAILS):
            created = self.prisoner_id is None
            try:
                if self.prisoner_id is None:
                    response = await self.api.create_prisoner(payload)
                    prisoner_id = _response_id(response, "prisonerId")
                    if prisoner_id is None:
                        raise ValueError(
                            "Create response did not include a prisoner id"
                        )
                else:
                    await self.api.update_prisoner(self.prisoner_id, payload)
                    prisoner_id = self.prisoner_id
            except Exception as exc:
                fallback = (
                    "Failed to create prisoner"
                    if self.mode is WizardMode.CREATE
                    else "Failed to update prisoner"
                )
                return self._fail(exc, fallback)
            self.prisoner_id = prisoner_id

        self.basic_details = payload
        self.notifications.success(
            "Prisoner created successfully"
            if created
            else "Basic details updated successfully"
        )
        logger.info(
            "Prisoner basic details saved",
            extra={"prisoner_id": prisoner_id, "mode": self.mode.value},
        )
        return self._advance()

    def add_photo(self, upload: PhotoUpload) -> int:
        self._expect(WizardStep.PHOTOS)
        return self.photos.add(upload)

    async def submit_photos(self) -> StepOutcome:
        """Upload every queued photo."""
        self._expect(WizardStep.PHOTOS)
        prisoner_id = self._require_prisoner()
        pending = self.photos.pending_additions()
        if (
            self.mode is WizardMode.CREATE
            and len(self.photos)
            and not any(
                photo.photo_type == PhotoType.PROFILE
                for photo in self.photos.payloads()
            )
        ):
            return self._reject("Profile photo is required")

        async def upload(key: int, item: DraftItem[PhotoDraft]) -> None:
            photo = item.payload
            if not isinstance(photo, PhotoUpload):
                return
            response = await self.api.upload_photo(
                prisoner_id,
                photo.filename,
                photo.content,
                photo.content_type,
                photo.photo_type.value,
            )
            self._settle(self.photos, key, response, "photoId")

        async with self._exclusive(WizardStep.PHOTOS):
            outcome = await self._run_tasks(
                [(key, item, upload) for key, item in pending],
                "Failed to upload photos",
            )
        if outcome is not None:
            return outcome
        if pending:
            self.notifications.success(f"{len(pending)} photo(s) uploaded successfully")
        return self._advance()

    async def delete_photo(self, key: int) -> bool:
        self._expect(WizardStep.PHOTOS)
        return await self._delete(
            self.photos, key, self.api.delete_photo, "photo", "Failed to delete photo"
        )

    def add_body_mark(self, data: Mapping[str, object]) -> int:
        self._expect(WizardStep.BODY_MARKS)
        return self.body_marks.add(BodyMarkForm.model_validate(dict(data)))

    def edit_body_mark(self, key: int, data: Mapping[str, object]) -> None:
        self._expect(WizardStep.BODY_MARKS)
        self.body_marks.edit(key, BodyMarkForm.model_validate(dict(data)))

    async def submit_body_marks(self) -> StepOutcome:
        """Send edited marks first, then new ones."""
        self._expect(WizardStep.BODY_MARKS)
        prisoner_id = self._require_prisoner()

        async def send(key: int, item: DraftItem[BodyMarkForm]) -> None:
            payload = item.payload.to_payload()
            if isinstance(item, New):
                response = await self.api.add_body_mark(prisoner_id, payload)
                self._settle(self.body_marks, key, response, "markId")
            else:
                await self.api.update_body_mark(prisoner_id, item.remote_id, payload)
                self.body_marks.mark_persisted(key, item.remote_id)

        async with self._exclusive(WizardStep.BODY_MARKS):
            tasks = self._partition(self.body_marks, send)
            outcome = await self._run_tasks(tasks, "Failed to save body marks")
        if outcome is not None:
            return outcome
        if tasks:
            self.notifications.success(
                "Body marks updated successfully"
                if self.mode is WizardMode.EDIT
                else f"{len(tasks)} body mark(s) added successfully"
            )
        return self._advance()

    async def delete_body_mark(self, key: int) -> bool:
        self._expect(WizardStep.BODY_MARKS)
        return await self._delete(
            self.body_marks,
            key,
            self.api.delete_body_mark,
            "body mark",
            "Failed to delete body mark",
        )

    def add_family_member(self, data: Mapping[str, object]) -> int:
        self._expect(WizardStep.FAMILY_MEMBERS)
        return self.family_members.add(FamilyMemberForm.model_validate(dict(data)))

    def edit_family_member(self, key: int, data: Mapping[str, object]) -> None:
        self._expect(WizardStep.FAMILY_MEMBERS)
        self.family_members.edit(key, FamilyMemberForm.model_validate(dict(data)))

    async def submit_family_members(self) -> StepOutcome:
        """Send family members and complete the wizard."""
        self._expect(WizardStep.FAMILY_MEMBERS)
        prisoner_id = self._require_prisoner()

        async def send(key: int, item: DraftItem[FamilyMemberForm]) -> None:
            payload = item.payload.to_payload()
            if isinstance(item, New):
                response = await self.api.add_family_member(prisoner_id, payload)
                self._settle(self.family_members, key, response, "familyId")
            else:
                await self.api.update_family_member(
                    prisoner_id, item.remote_id, payload
                )
                self.family_members.mark_persisted(key, item.remote_id)

        async with self._exclusive(WizardStep.FAMILY_MEMBERS):
            outcome = await self._run_tasks(
                self._partition(self.family_members, send),
                "Failed to save family members",
            )
        if outcome is not None:
            return outcome
        self.notifications.success(
            "Prisoner registration completed successfully!"
            if self.mode is WizardMode.CREATE
            else "Prisoner updated successfully!"
        )
        return self._advance()

    async def delete_family_member(self, key: int) -> bool:
        self._expect(WizardStep.FAMILY_MEMBERS)
        return await self._delete(
            self.family_members,
            key,
            self.api.delete_family_member,
            "family member",
            "Failed to delete family member",
        )

    def back(self) -> WizardStep:
        """Return to the previous step without touching the backend."""
        self._ensure_idle()
        if self.step in (WizardStep.BASIC_DETAILS, WizardStep.COMPLETE):
            raise WizardStateError(f"Cannot go back from {self.step.name.lower()}")
        self.step = WizardStep(self.step - 1)
        self.last_error = None
        return self.step

    @property
    def completed(self) -> bool:
        return self.step is WizardStep.COMPLETE

    async def _run_tasks(
        self,
        tasks: list[tuple[int, DraftItem, Callable[[int, DraftItem], Awaitable[None]]]],
        fallback: str,
    ) -> StepOutcome | None:
        for key, item, task in tasks:
            try:
                await task(key, item)
            except Exception as exc:
                logger.warning(
                    "Wizard task failed",
                    extra={"prisoner_id": self.prisoner_id, "draft_key": key},
                )
                return self._fail(exc, fallback)
        return None

    def _partition(
        self,
        collection: DraftCollection,
        task: Callable[[int, DraftItem], Awaitable[None]],
    ) -> list[tuple[int, DraftItem, Callable[[int, DraftItem], Awaitable[None]]]]:
        updates = [(key, item, task) for key, item in collection.pending_updates()]
        additions = [(key, item, task) for key, item in collection.pending_additions()]
        return updates + additions

    def _settle(
        self,
        collection: DraftCollection,
        key: int,
        response: dict[str, object],
        id_key: str,
    ) -> None:
        remote_id = _response_id(response, id_key)
        if remote_id is None:
            # Persisted but not addressable from this draft.
            logger.warning(
                "Created item has no id", extra={"prisoner_id": self.prisoner_id}
            )
            collection.discard(key)
            return
        collection.mark_persisted(key, remote_id)

    async def _delete(
        self,
        collection: DraftCollection,
        key: int,
        call: Callable[[int, int], Awaitable[dict[str, object]]],
        label: str,
        fallback: str,
    ) -> bool:
        item = collection.get(key)
        if item is None:
            raise KeyError(f"No {label} with key {key}")
        if isinstance(item, New):
            collection.discard(key)
            return True
        prisoner_id = self._require_prisoner()
        async with self._exclusive(self.step):
            try:
                await call(prisoner_id, item.remote_id)
            except Exception as exc:
                self.last_error = self.notifications.failure(exc, fallback)
                return False
        collection.discard(key)
        self.last_error = None
        self.notifications.success(f"{label.capitalize()} deleted successfully")
        return True

    async def _load_prisoner(self) -> dict[str, object]:
        try:
            response = await self.api.get_prisoner(self._require_prisoner())
        except Exception as exc:
            self.notifications.failure(exc, "Failed to load prisoner data")
            raise
        data = response.get("data")
        return data if isinstance(data, dict) else {}

    def _seed_photos(self, prisoner: Mapping[str, object]) -> None:
        for photo in _records(prisoner, "photos"):
            remote_id = photo.get("photoId")
            if isinstance(remote_id, int):
                self.photos.seed(
                    remote_id,
                    StoredPhoto(
                        photo_type=str(photo.get("photoType", "")),
                        url=photo.get("photoUrl"),
                    ),
                )

    def _seed_body_marks(self, prisoner: Mapping[str, object]) -> None:
        for mark in _records(prisoner, "bodyMarks"):
            remote_id = mark.get("markId")
            if isinstance(remote_id, int):
                self.body_marks.seed(
                    remote_id,
                    BodyMarkForm.model_construct(
                        mark_description=mark.get("description", ""),
                        mark_location=mark.get("location", ""),
                    ),
                )

    def _seed_family_members(self, prisoner: Mapping[str, object]) -> None:
        for member in _records(prisoner, "familyDetails"):
            remote_id = member.get("familyId")
            if isinstance(remote_id, int):
                self.family_members.seed(
                    remote_id,
                    FamilyMemberForm.model_construct(
                        family_member_name=_first(
                            member, "memberName", "member_name"
                        ),
                        relationship=_first(member, "relationship"),
                        contact_number=_first(
                            member, "contactNumber", "contact_number"
                        ),
                        address=_first(member, "address"),
                        nic=_first(member, "nic"),
                        emergency_contact=bool(
                            _first(member, "emergencyContact", "emergency_contact")
                        ),
                    ),
                )

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    @asynccontextmanager
    async def _exclusive(self, step: WizardStep) -> AsyncIterator[None]:
        self._expect(step)
        async with self._busy:
            yield

    def _ensure_idle(self) -> None:
        if self._busy.locked():
            raise WizardStateError("Another request for this draft is still running")

    def _expect(self, step: WizardStep) -> None:
        self._ensure_idle()
        if self.step is not step:
            raise WizardStateError(
                f"Wizard is on {self.step.name.lower()}, not {step.name.lower()}"
            )

    def _require_prisoner(self) -> int:
        if self.prisoner_id is None:
            raise WizardStateError("Basic details have not been saved yet")
        return self.prisoner_id

    def _advance(self) -> StepOutcome:
        self.step = WizardStep(self.step + 1)
        self.last_error = None
        return StepOutcome(success=True, step=self.step)

    def _fail(self, exc: Exception, fallback: str) -> StepOutcome:
        self.last_error = self.notifications.failure(exc, fallback)
        return StepOutcome(success=False, step=self.step, message=self.last_error)

    def _reject(self, message: str) -> StepOutcome:
        self.last_error = message
        self.notifications.error(message)
        return StepOutcome(success=False, step=self.step, message=message)


def _require_manage(session: Session | None, what: str) -> Session:
    if session is None or not is_granted(
        session, permissions=[Permission.MANAGE_PRISONERS]
    ):
        raise PermissionDeniedError(f"You do not have permission to {what}")
    return session


def _response_id(response: Mapping[str, object], key: str) -> int | None:
    data = response.get("data")
    if not isinstance(data, dict):
        return None
    value = data.get(key, data.get("id"))
    return value if isinstance(value, int) else None


def _records(prisoner: Mapping[str, object], key: str) -> list[dict[str, object]]:
    raw = prisoner.get(key)
    if not isinstance(raw, list):
        return []
    return [entry for entry in raw if isinstance(entry, dict)]


def _first(record: Mapping[str, object], *keys: str) -> object:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return ""


def _prisoner_facility(prisoner: Mapping[str, object]) -> int | None:
    prison = prisoner.get("prison")
    if isinstance(prison, dict):
        facility_id = prison.get("prisonId")
    else:
        facility_id = prisoner.get("prisonId", prisoner.get("prison_id"))
    if isinstance(facility_id, bool) or not isinstance(facility_id, int):
        return None
    return facility_id


def _basic_details(
    prisoner: Mapping[str, object], facility_id: int | None
) -> dict[str, object]:
    """Translate a backend prisoner into basic-details form values."""
    details: dict[str, object] = {}
    for name, remote_name in _BASIC_DETAIL_FIELDS.items():
        value = prisoner.get(remote_name)
        if value is None:
            continue
        if name in _DATE_FIELDS and isinstance(value, str):
            # Backend dates may arrive as ISO datetimes.
            value = value[:10]
        details[name] = value
    if facility_id is not None:
        details["prison_id"] = facility_id
    return details


@dataclass
class _DraftEntry:
    wizard: PrisonerWizard
    last_used: float


@dataclass
class WizardRegistry:
    """Open wizard drafts keyed by an opaque id.

    A draft is only handed back to the operator who opened it, and drafts
    left idle longer than ``idle_timeout_seconds`` are dropped.
    """

    idle_timeout_seconds: float = 3600.0
    clock: Callable[[], float] = time.monotonic
    _drafts: dict[str, _DraftEntry] = field(default_factory=dict)

    def register(self, wizard: PrisonerWizard) -> str:
        self._evict_idle()
        draft_id = uuid.uuid4().hex
        self._drafts[draft_id] = _DraftEntry(wizard=wizard, last_used=self.clock())
        return draft_id

    def get(self, draft_id: str, owner_id: int) -> PrisonerWizard:
        """Return the draft; ``KeyError`` if it is gone or belongs to someone else."""
        self._evict_idle()
        entry = self._drafts.get(draft_id)
        if entry is None or entry.wizard.owner_id != owner_id:
            raise KeyError(draft_id)
        entry.last_used = self.clock()
        return entry.wizard

    def discard(self, draft_id: str) -> None:
        self._drafts.pop(draft_id, None)

    def clear(self) -> None:
        if self._drafts:
            logger.info("Discarding open drafts", extra={"count": len(self._drafts)})
        self._drafts.clear()

    def __len__(self) -> int:
        return len(self._drafts)

    def _evict_idle(self) -> None:
        cutoff = self.clock() - self.idle_timeout_seconds
        expired = [
            draft_id
            for draft_id, entry in self._drafts.items()
            if entry.last_used < cutoff and not entry.wizard.busy
        ]
        for draft_id in expired:
            logger.info("Evicting idle draft", extra={"draft_id": draft_id})
            del self._drafts[draft_id]
