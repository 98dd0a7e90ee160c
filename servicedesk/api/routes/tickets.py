from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field

from servicedesk.dependencies import AdminActor, CurrentActor, TicketServiceDep
from servicedesk.tickets import AttachmentMetadata, TicketAction, TicketPriority, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    priority: str | None = None
    department_id: int | None = None
    category_id: int | None = None
    requester_id: int | None = None


class TicketStatusChangeRequest(BaseModel):
    # validated by the lifecycle service so that unknown values map to 400
    status: str | None = None


class TicketAssignRequest(BaseModel):
    assigned_to_id: int | None = None


class EmployeeUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    priority: str | None = None
    department_id: int | None = None
    category_id: int | None = None


class FeedbackRequest(BaseModel):
    rating: int | None = None
    comment: str | None = Field(default=None, max_length=2000)


class NoteRequest(BaseModel):
    note: str | None = None
    time_spent_minutes: int | None = None


class AttachmentRequest(BaseModel):
    filename_original: str
    filename_stored: str
    mime_type: str | None = None
    size_bytes: int = Field(default=0, ge=0)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_code: str
    title: str
    description: str | None
    status: TicketStatus
    priority: TicketPriority
    department_id: int | None
    category_id: int | None
    requester_id: int
    assigned_to_id: int | None
    feedback_rating: int | None
    feedback_comment: str | None
    feedback_given_at: datetime | None
    created_at: datetime
    updated_at: datetime


class TicketLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    actor_id: int
    action_type: TicketAction
    old_status: TicketStatus | None
    new_status: TicketStatus | None
    note: str | None
    created_at: datetime


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    uploaded_by_id: int
    filename_original: str
    filename_stored: str
    mime_type: str | None
    size_bytes: int
    created_at: datetime


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    actor: CurrentActor,
    status_filter: str | None = Query(default=None, alias="status"),
    department_id: int | None = None,
    category_id: int | None = None,
    mine: bool = False,
    assigned: bool = False,
) -> list[TicketResponse]:
    tickets = await service.list_tickets(
        actor,
        status=status_filter,
        department_id=department_id,
        category_id=category_id,
        mine=mine,
        assigned=assigned,
    )
    return [TicketResponse.model_validate(ticket) for ticket in tickets]


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep, actor: CurrentActor) -> TicketResponse:
    ticket = await service.create_ticket(actor, **payload.model_dump())
    return TicketResponse.model_validate(ticket)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: int, service: TicketServiceDep, actor: CurrentActor) -> TicketResponse:
    ticket = await service.get_ticket(ticket_id, actor)
    return TicketResponse.model_validate(ticket)


@router.patch("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: int,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    ticket = await service.change_status(ticket_id, actor, payload.status)
    return TicketResponse.model_validate(ticket)


@router.patch("/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: int,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    actor: AdminActor,
) -> TicketResponse:
    ticket = await service.assign(ticket_id, actor, payload.assigned_to_id)
    return TicketResponse.model_validate(ticket)


@router.patch("/{ticket_id}/employee-update", response_model=TicketResponse)
async def update_ticket_by_employee(
    ticket_id: int,
    payload: EmployeeUpdateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    ticket = await service.update_by_employee(ticket_id, actor, **payload.model_dump())
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/feedback", response_model=TicketResponse)
async def add_ticket_feedback(
    ticket_id: int,
    payload: FeedbackRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    ticket = await service.add_feedback(ticket_id, actor, payload.rating, payload.comment)
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/notes", response_model=TicketLogResponse, status_code=status.HTTP_201_CREATED)
async def add_ticket_note(
    ticket_id: int,
    payload: NoteRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketLogResponse:
    entry = await service.add_note(ticket_id, actor, payload.note, payload.time_spent_minutes)
    return TicketLogResponse.model_validate(entry)


@router.get("/{ticket_id}/logs", response_model=list[TicketLogResponse])
async def get_ticket_logs(ticket_id: int, service: TicketServiceDep, actor: CurrentActor) -> list[TicketLogResponse]:
    entries = await service.list_logs(ticket_id, actor)
    return [TicketLogResponse.model_validate(entry) for entry in entries]


@router.post("/{ticket_id}/attachments", response_model=AttachmentResponse, status_code=status.HTTP_201_CREATED)
async def add_ticket_attachment(
    ticket_id: int,
    payload: AttachmentRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> AttachmentResponse:
    """Record a file already placed in storage; the upload itself happens upstream."""

    attachment = await service.attach_file(ticket_id, actor, AttachmentMetadata(**payload.model_dump()))
    return AttachmentResponse.model_validate(attachment)


@router.get("/{ticket_id}/attachments", response_model=list[AttachmentResponse])
async def list_ticket_attachments(
    ticket_id: int, service: TicketServiceDep, actor: CurrentActor
) -> list[AttachmentResponse]:
    attachments = await service.list_attachments(ticket_id, actor)
    return [AttachmentResponse.model_validate(attachment) for attachment in attachments]
