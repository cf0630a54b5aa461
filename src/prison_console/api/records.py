"""CRUD endpoints for the backend collections."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from prison_console.api.guards import (
    current_session,
    require_console,
    require_session,
)
from prison_console.domain.forms import ListFilters
from prison_console.domain.session import Session
from prison_console.services.console import ConsoleSession
from prison_console.services.permissions import allowed_actions
from prison_console.services.records import RESOURCES, RecordService

if TYPE_CHECKING:
    from prison_console.containers import AppContainer
    from prison_console.services.records import RecordPage

router = APIRouter(prefix="/records", tags=["records"])


def _unknown_resource() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail="Unknown resource"
    )


async def record_service(
    resource: str, console: ConsoleSession = Depends(require_console)
) -> RecordService:
    """Resolve the collection service bound to the caller's console."""
    service = console.record_services.get(resource)
    if service is None:
        raise _unknown_resource()
    return service


def _filters(request: Request) -> ListFilters:
    container: AppContainer = request.app.state.container
    raw: dict[str, object] = dict(request.query_params)
    raw.setdefault("page_size", container.settings.default_page_size)
    filters = ListFilters.model_validate(raw)
    if filters.page_size > container.settings.max_page_size:
        filters = filters.model_copy(
            update={"page_size": container.settings.max_page_size}
        )
    return filters


def _page_body(page: RecordPage) -> dict[str, object]:
    body: dict[str, object] = {
        "success": True,
        "data": page.records,
        "pagination": {
            "page": page.pagination.current_page,
            "pages": page.pagination.total_pages,
            "total": page.pagination.total_records,
        },
    }
    if page.summary is not None:
        body["summary"] = page.summary
    return body


@router.get("/{resource}")
async def list_records(
    resource: str,
    request: Request,
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    """Return one page of records; query parameters are list filters."""
    page = await service.list(session, _filters(request))
    return _page_body(page)


@router.get("/{resource}/actions")
async def record_actions(
    resource: str,
    session: Session | None = Depends(current_session),
) -> dict[str, object]:
    """Return which actions the operator may perform on ``resource``."""
    if resource not in RESOURCES:
        raise _unknown_resource()
    return {"success": True, "data": allowed_actions(session, resource)}


@router.get("/{resource}/stats")
async def record_stats(
    resource: str,
    facility_id: int | None = None,
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    try:
        data = await service.stats(session, facility_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No statistics"
        ) from exc
    return {"success": True, "data": data}


@router.get("/{resource}/lookups/{name:path}")
async def record_lookup(
    resource: str,
    name: str,
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    """Return helper options such as ``users/lookups/roles/dropdown``."""
    try:
        data = await service.lookup(session, name)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Unknown lookup"
        ) from exc
    return {"success": True, "data": data}


@router.post("/{resource}", status_code=status.HTTP_201_CREATED)
async def create_record(
    resource: str,
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    data = await service.create(session, payload)
    return {"success": True, "data": data}


@router.get("/{resource}/{record_id}")
async def get_record(
    resource: str,
    record_id: int,
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    return {"success": True, "data": await service.get(session, record_id)}


@router.put("/{resource}/{record_id}")
async def update_record(
    resource: str,
    record_id: int,
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    data = await service.update(session, record_id, payload)
    return {"success": True, "data": data}


@router.delete("/{resource}/{record_id}")
async def delete_record(
    resource: str,
    record_id: int,
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    await service.delete(session, record_id)
    return {"success": True, "message": f"{service.definition.label} deleted"}


@router.post("/{resource}/{record_id}/actions/{action}")
async def perform_action(  # noqa: PLR0913
    resource: str,
    record_id: int,
    action: str,
    payload: dict[str, Any] | None = Body(default=None),
    session: Session = Depends(require_session),
    service: RecordService = Depends(record_service),
) -> dict[str, object]:
    """Run a record-level action such as ``approve-payment``."""
    try:
        data = await service.perform(session, record_id, action, payload)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Unknown action"
        ) from exc
    return {"success": True, "data": data}
