"""Endpoints driving the prisoner registration wizard."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import (
    APIRouter,
    Body,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    status,
)

from prison_console.api.guards import require_console, require_permissions
from prison_console.domain.forms import PhotoType, PhotoUpload
from prison_console.domain.session import Permission, Session
from prison_console.domain.wizard import DraftCollection
from prison_console.services.console import ConsoleSession
from prison_console.services.wizard import PrisonerWizard, StepOutcome, StoredPhoto

router = APIRouter(prefix="/wizards", tags=["wizards"])

require_manage_prisoners = require_permissions(Permission.MANAGE_PRISONERS)


@dataclass(frozen=True)
class OpenDraft:
    draft_id: str
    wizard: PrisonerWizard
    console: ConsoleSession


async def open_draft(
    draft_id: str,
    console: ConsoleSession = Depends(require_console),
    session: Session = Depends(require_manage_prisoners),
) -> OpenDraft:
    """Resolve a draft opened by this operator on this console."""
    try:
        wizard = console.wizards.get(draft_id, session.user_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Unknown draft"
        ) from exc
    return OpenDraft(draft_id=draft_id, wizard=wizard, console=console)


def _items(collection: DraftCollection) -> list[dict[str, object]]:
    entries = []
    for key, item in collection:
        payload = item.payload
        if isinstance(payload, PhotoUpload):
            details: dict[str, object] = {
                "photoType": payload.photo_type.value,
                "filename": payload.filename,
            }
        elif isinstance(payload, StoredPhoto):
            details = {"photoType": payload.photo_type, "photoUrl": payload.url}
        else:
            details = payload.model_dump(mode="json")
        entries.append(
            {
                "key": key,
                "provenance": item.provenance.value,
                "remoteId": getattr(item, "remote_id", None),
                **details,
            }
        )
    return entries


def serialize_draft(draft_id: str, wizard: PrisonerWizard) -> dict[str, object]:
    """Return the JSON view of a wizard draft."""
    return {
        "draftId": draft_id,
        "mode": wizard.mode.value,
        "step": int(wizard.step),
        "stepName": wizard.step.name.lower(),
        "prisonerId": wizard.prisoner_id,
        "basicDetails": wizard.basic_details,
        "photos": _items(wizard.photos),
        "bodyMarks": _items(wizard.body_marks),
        "familyMembers": _items(wizard.family_members),
        "lastError": wizard.last_error,
        "completed": wizard.completed,
    }


def _step_body(draft: OpenDraft, outcome: StepOutcome) -> dict[str, object]:
    if outcome.completed:
        draft.console.wizards.discard(draft.draft_id)
    return {
        "success": outcome.success,
        "message": outcome.message,
        "data": serialize_draft(draft.draft_id, draft.wizard),
    }


def _draft_body(draft: OpenDraft, **extra: object) -> dict[str, object]:
    data = serialize_draft(draft.draft_id, draft.wizard)
    return {"success": True, **extra, "data": data}


def _deletion_body(draft: OpenDraft, deleted: bool) -> dict[str, object]:
    return {
        "success": deleted,
        "message": draft.wizard.last_error,
        "data": serialize_draft(draft.draft_id, draft.wizard),
    }


def _missing_item(exc: KeyError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.post("/prisoners", status_code=status.HTTP_201_CREATED)
async def open_create_wizard(
    console: ConsoleSession = Depends(require_console),
    session: Session = Depends(require_manage_prisoners),
) -> dict[str, object]:
    """Start registering a new prisoner."""
    wizard = PrisonerWizard.create(session, console.prisoner_api, console.notifications)
    draft_id = console.wizards.register(wizard)
    return {"success": True, "data": serialize_draft(draft_id, wizard)}


@router.post("/prisoners/{prisoner_id}/edit", status_code=status.HTTP_201_CREATED)
async def open_edit_wizard(
    prisoner_id: int,
    console: ConsoleSession = Depends(require_console),
    session: Session = Depends(require_manage_prisoners),
) -> dict[str, object]:
    """Start editing a persisted prisoner."""
    wizard = await PrisonerWizard.edit(
        session, console.prisoner_api, console.notifications, prisoner_id
    )
    draft_id = console.wizards.register(wizard)
    return {"success": True, "data": serialize_draft(draft_id, wizard)}


@router.get("/{draft_id}")
async def get_draft(draft: OpenDraft = Depends(open_draft)) -> dict[str, object]:
    return _draft_body(draft)


@router.delete("/{draft_id}")
async def cancel_draft(draft: OpenDraft = Depends(open_draft)) -> dict[str, object]:
    """Abandon a draft; nothing already saved is rolled back."""
    draft.console.wizards.discard(draft.draft_id)
    return {"success": True, "message": "Draft discarded"}


@router.post("/{draft_id}/back")
async def go_back(draft: OpenDraft = Depends(open_draft)) -> dict[str, object]:
    draft.wizard.back()
    return _draft_body(draft)


@router.post("/{draft_id}/basic-details")
async def submit_basic_details(
    payload: dict[str, Any] = Body(...), draft: OpenDraft = Depends(open_draft)
) -> dict[str, object]:
    outcome = await draft.wizard.submit_basic_details(payload)
    return _step_body(draft, outcome)


@router.post("/{draft_id}/photos", status_code=status.HTTP_201_CREATED)
async def add_photo(
    photo: UploadFile = File(...),
    photo_type: PhotoType = Form(...),
    draft: OpenDraft = Depends(open_draft),
) -> dict[str, object]:
    """Queue an image for upload when the photos step is submitted."""
    upload = PhotoUpload(
        photo_type=photo_type,
        filename=photo.filename or "photo",
        content_type=photo.content_type or "application/octet-stream",
        content=await photo.read(),
    )
    return _draft_body(draft, key=draft.wizard.add_photo(upload))


@router.delete("/{draft_id}/photos/{key}")
async def delete_photo(
    key: int, draft: OpenDraft = Depends(open_draft)
) -> dict[str, object]:
    try:
        deleted = await draft.wizard.delete_photo(key)
    except KeyError as exc:
        raise _missing_item(exc) from exc
    return _deletion_body(draft, deleted)


@router.post("/{draft_id}/photos/submit")
async def submit_photos(draft: OpenDraft = Depends(open_draft)) -> dict[str, object]:
    outcome = await draft.wizard.submit_photos()
    return _step_body(draft, outcome)


@router.post("/{draft_id}/body-marks", status_code=status.HTTP_201_CREATED)
async def add_body_mark(
    payload: dict[str, Any] = Body(...), draft: OpenDraft = Depends(open_draft)
) -> dict[str, object]:
    return _draft_body(draft, key=draft.wizard.add_body_mark(payload))


@router.put("/{draft_id}/body-marks/{key}")
async def edit_body_mark(
    key: int,
    payload: dict[str, Any] = Body(...),
    draft: OpenDraft = Depends(open_draft),
) -> dict[str, object]:
    try:
        draft.wizard.edit_body_mark(key, payload)
    except KeyError as exc:
        raise _missing_item(exc) from exc
    return _draft_body(draft)


@router.delete("/{draft_id}/body-marks/{key}")
async def delete_body_mark(
    key: int, draft: OpenDraft = Depends(open_draft)
) -> dict[str, object]:
    try:
        deleted = await draft.wizard.delete_body_mark(key)
    except KeyError as exc:
        raise _missing_item(exc) from exc
    return _deletion_body(draft, deleted)


@router.post("/{draft_id}/body-marks/submit")
async def submit_body_marks(
    draft: OpenDraft = Depends(open_draft),
) -> dict[str, object]:
    outcome = await draft.wizard.submit_body_marks()
    return _step_body(draft, outcome)


@router.post("/{draft_id}/family-members", status_code=status.HTTP_201_CREATED)
async def add_family_member(
    payload: dict[str, Any] = Body(...), draft: OpenDraft = Depends(open_draft)
) -> dict[str, object]:
    return _draft_body(draft, key=draft.wizard.add_family_member(payload))


@router.put("/{draft_id}/family-members/{key}")
async def edit_family_member(
    key: int,
    payload: dict[str, Any] = Body(...),
    draft: OpenDraft = Depends(open_draft),
) -> dict[str, object]:
    try:
        draft.wizard.edit_family_member(key, payload)
    except KeyError as exc:
        raise _missing_item(exc) from exc
    return _draft_body(draft)


@router.delete("/{draft_id}/family-members/{key}")
async def delete_family_member(
    key: int, draft: OpenDraft = Depends(open_draft)
) -> dict[str, object]:
    try:
        deleted = await draft.wizard.delete_family_member(key)
    except KeyError as exc:
        raise _missing_item(exc) from exc
    return _deletion_body(draft, deleted)


@router.post("/{draft_id}/family-members/submit")
async def submit_family_members(
    draft: OpenDraft = Depends(open_draft),
) -> dict[str, object]:
    """Send family members; a completed draft is discarded."""
    outcome = await draft.wizard.submit_family_members()
    return _step_body(draft, outcome)
