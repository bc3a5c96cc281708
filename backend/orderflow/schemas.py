"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Literal, Optional
from datetime import date as date_type, datetime
from decimal import Decimal
from uuid import UUID


Priority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]


# User / auth schemas
class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


Role = Literal["ADMIN", "MANAGER", "DEVELOPER", "VIEWER"]
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    role: Role


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    role: Optional[Role] = None


class PasswordReset(BaseModel):
    password: str = Field(min_length=6)


# Client schemas
class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None


class ClientResponse(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    is_archived: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PortalTokenResponse(BaseModel):
    portal_token: str
    email_sent: bool


# Order status schemas
class OrderStatusCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    color: str = "#6B7280"
    is_initial: bool = False
    is_final: bool = False
    notify_client: bool = False


class OrderStatusUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = None
    is_initial: Optional[bool] = None
    is_final: Optional[bool] = None
    notify_client: Optional[bool] = None
    is_active: Optional[bool] = None


class OrderStatusReorder(BaseModel):
    status_ids: list[UUID] = Field(min_length=1)


class OrderStatusResponse(BaseModel):
    id: UUID
    code: str
    name: str
    color: str
    position: int
    is_initial: bool
    is_final: bool
    notify_client: bool
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


# Order schemas
class OrderCreate(BaseModel):
    client_id: UUID
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Priority = "MEDIUM"
    deadline: Optional[datetime] = None
    estimated_budget: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = None
    manager_id: Optional[UUID] = None


class OrderStatusChange(BaseModel):
    status_id: UUID
    comment: Optional[str] = None


class OrderResponse(BaseModel):
    id: UUID
    number: str
    title: str
    description: Optional[str] = None
    status_id: UUID
    client_id: UUID
    manager_id: Optional[UUID] = None
    priority: str
    deadline: Optional[datetime] = None
    currency: str
    estimated_budget: Optional[Decimal] = None
    progress_percent: int
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    status: Optional[OrderStatusResponse] = None
    model_config = ConfigDict(from_attributes=True)


class OrderStatusHistoryResponse(BaseModel):
    id: UUID
    from_status_id: Optional[UUID] = None
    to_status_id: UUID
    changed_by_id: Optional[UUID] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: UUID
    order_id: UUID
    user_id: Optional[UUID] = None
    client_name: Optional[str] = None
    content: str
    is_internal: bool
    is_portal_visible: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Milestone schemas
class MilestoneCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    requires_approval: bool = False
    due_date: Optional[datetime] = None


class MilestoneStatusChange(BaseModel):
    status: str


class MilestoneChangesRequest(BaseModel):
    comment: Optional[str] = None


class MilestoneResponse(BaseModel):
    id: UUID
    order_id: UUID
    title: str
    description: Optional[str] = None
    status: str
    position: int
    requires_approval: bool
    progress_percent: int
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    client_approved_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Task schemas
class TaskCreate(BaseModel):
    order_id: UUID
    milestone_id: Optional[UUID] = None
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Priority = "MEDIUM"
    assignee_id: Optional[UUID] = None
    due_date: Optional[datetime] = None


class TaskStatusChange(BaseModel):
    status: str


class TaskResponse(BaseModel):
    id: UUID
    order_id: UUID
    milestone_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    assignee_id: Optional[UUID] = None
    position: int
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Invoice schemas
class LineItemIn(BaseModel):
    description: str = Field(min_length=1)
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(ge=0)


class LineItemResponse(BaseModel):
    id: UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    position: int
    model_config = ConfigDict(from_attributes=True)


class InvoiceCreate(BaseModel):
    order_id: UUID
    items: list[LineItemIn] = Field(min_length=1)
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    currency: Optional[str] = None
    notes: Optional[str] = None


class InvoiceStatusChange(BaseModel):
    status: str


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_method: str = Field(min_length=1, max_length=50)
    reference: Optional[str] = None
    payment_date: Optional[datetime] = None


class PaymentResponse(BaseModel):
    id: UUID
    invoice_id: UUID
    amount: Decimal
    payment_method: str
    reference: Optional[str] = None
    payment_date: datetime
    model_config = ConfigDict(from_attributes=True)


class InvoiceResponse(BaseModel):
    id: UUID
    number: str
    order_id: UUID
    client_id: UUID
    status: str
    currency: str
    issue_date: datetime
    due_date: Optional[datetime] = None
    subtotal: Decimal
    total: Decimal
    paid_amount: Decimal
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: list[LineItemResponse] = []
    payments: list[PaymentResponse] = []
    model_config = ConfigDict(from_attributes=True)


# Proposal schemas
class ProposalCreate(BaseModel):
    client_id: UUID
    title: str = Field(min_length=1, max_length=255)
    order_id: Optional[UUID] = None
    currency: Optional[str] = None
    valid_until: Optional[datetime] = None
    items: list[LineItemIn] = Field(min_length=1)


class ProposalStatusChange(BaseModel):
    status: str


class ProposalClientResponse(BaseModel):
    response: Literal["ACCEPTED", "REJECTED"]


class ProposalResponse(BaseModel):
    id: UUID
    number: str
    title: str
    client_id: UUID
    order_id: Optional[UUID] = None
    status: str
    currency: str
    total_amount: Decimal
    valid_until: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    items: list[LineItemResponse] = []
    model_config = ConfigDict(from_attributes=True)


# Ticket schemas
class PortalTicketCreate(BaseModel):
    subject: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    priority: Priority = "MEDIUM"
    order_id: Optional[UUID] = None


class TicketMessageCreate(BaseModel):
    content: str = Field(min_length=1)
    is_internal: bool = False


class PortalTicketMessageCreate(BaseModel):
    content: str = Field(min_length=1)


class TicketStatusChange(BaseModel):
    status: str


class TicketAssign(BaseModel):
    assignee_id: Optional[UUID] = None


class TicketMessageResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    client_name: Optional[str] = None
    content: str
    is_from_client: bool
    is_internal: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TicketResponse(BaseModel):
    id: UUID
    number: str
    subject: str
    description: str
    status: str
    priority: str
    client_id: UUID
    order_id: Optional[UUID] = None
    assignee_id: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TicketDetailResponse(TicketResponse):
    messages: list[TicketMessageResponse] = []


# Time tracking schemas
class TimeEntryCreate(BaseModel):
    order_id: UUID
    task_id: Optional[UUID] = None
    user_id: Optional[UUID] = None  # defaults to the caller
    date: date_type
    hours: Decimal = Field(ge=Decimal("0.25"), le=24)
    description: Optional[str] = Field(default=None, max_length=500)
    is_billable: bool = True


class TimeEntryUpdate(BaseModel):
    date: Optional[date_type] = None
    hours: Optional[Decimal] = Field(default=None, ge=Decimal("0.25"), le=24)
    description: Optional[str] = Field(default=None, max_length=500)
    is_billable: Optional[bool] = None


class TimeEntryResponse(BaseModel):
    id: UUID
    order_id: UUID
    task_id: Optional[UUID] = None
    user_id: UUID
    date: date_type
    hours: Decimal
    description: Optional[str] = None
    is_billable: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TimeEntryListResponse(BaseModel):
    items: list[TimeEntryResponse]
    total: int
    total_hours: Decimal


class OrderRef(BaseModel):
    id: UUID
    number: str
    title: str
    model_config = ConfigDict(from_attributes=True)


class WeeklyGridRow(BaseModel):
    order: OrderRef
    days: list[Decimal]
    total: Decimal


class WeeklyGridResponse(BaseModel):
    week_start: date_type
    rows: list[WeeklyGridRow]
    day_totals: list[Decimal]
    grand_total: Decimal


class WeeklyOrderHours(BaseModel):
    order: OrderRef
    entries: list[TimeEntryResponse]
    total_hours: Decimal


class WeeklySummaryResponse(BaseModel):
    week_start: date_type
    entries: list[TimeEntryResponse]
    by_order: list[WeeklyOrderHours]
    total_hours: Decimal
    billable_hours: Decimal


# Notification schemas
class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    description: str
    link_url: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    unread_count: int


# Settings schemas
class NumberingSettingsResponse(BaseModel):
    order_prefix: str
    next_order_number: int
    invoice_prefix: str
    next_invoice_number: int
    proposal_prefix: str
    next_proposal_number: int
    ticket_prefix: str
    next_ticket_number: int
    model_config = ConfigDict(from_attributes=True)


class NumberingSettingsUpdate(BaseModel):
    order_prefix: Optional[str] = Field(default=None, max_length=20)
    invoice_prefix: Optional[str] = Field(default=None, max_length=20)
    proposal_prefix: Optional[str] = Field(default=None, max_length=20)
    ticket_prefix: Optional[str] = Field(default=None, max_length=20)


# Portal schemas
class PortalAuthRequest(BaseModel):
    token: str = Field(min_length=1, max_length=128)


class PortalMilestoneReject(BaseModel):
    comment: str = Field(min_length=1)


class PortalSessionResponse(BaseModel):
    client: ClientResponse


class DeadlineSweepResponse(BaseModel):
    milestones: int
    tasks: int
    notificationsCreated: int

