"""SQLAlchemy models for clients, orders and their workflow entities."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Date, DateTime, Text, Numeric,
    ForeignKey, CheckConstraint, Index, Uuid
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base
from .services.status_rules import (
    INVOICE_STATUSES,
    MILESTONE_STATUSES,
    NOTIFICATION_TYPES,
    PRIORITIES,
    PROPOSAL_STATUSES,
    ROLES,
    TASK_STATUSES,
    TICKET_STATUSES,
)

SETTINGS_ROW_ID = "default"


class User(Base):
    """Internal staff user."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="DEVELOPER", index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(ROLES), name="chk_user_role"),
    )

    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


class Client(Base):
    """Client company / person. Root of the ownership tree."""
    __tablename__ = "clients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    portal_token = Column(String(128), unique=True, nullable=True, index=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    orders = relationship("Order", back_populates="client", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="client", cascade="all, delete-orphan")
    proposals = relationship("Proposal", back_populates="client", cascade="all, delete-orphan")
    tickets = relationship("Ticket", back_populates="client", cascade="all, delete-orphan")


class OrderStatus(Base):
    """Configurable order status (mutable reference data)."""
    __tablename__ = "order_statuses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False, default="#6B7280")
    position = Column(Integer, nullable=False, default=0)
    is_initial = Column(Boolean, nullable=False, default=False)
    is_final = Column(Boolean, nullable=False, default=False)
    notify_client = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    orders = relationship("Order", back_populates="status")


class Order(Base):
    """Client project / engagement."""
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    number = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status_id = Column(Uuid, ForeignKey("order_statuses.id"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    manager_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    priority = Column(String(20), nullable=False, default="MEDIUM")
    deadline = Column(DateTime(timezone=True), nullable=True, index=True)
    currency = Column(String(10), nullable=False, default="TJS")
    estimated_budget = Column(Numeric(14, 2), nullable=True)
    progress_percent = Column(Integer, nullable=False, default=0)
    actual_start_date = Column(DateTime(timezone=True), nullable=True)
    actual_end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(priority.in_(PRIORITIES), name="chk_order_priority"),
    )

    client = relationship("Client", back_populates="orders")
    status = relationship("OrderStatus", back_populates="orders")
    manager = relationship("User")
    milestones = relationship(
        "Milestone", back_populates="order", cascade="all, delete-orphan", order_by="Milestone.position"
    )
    tasks = relationship("Task", back_populates="order", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="order", cascade="all, delete-orphan")
    time_entries = relationship("TimeEntry", back_populates="order", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="order", cascade="all, delete-orphan")
    status_history = relationship("OrderStatusHistory", back_populates="order", cascade="all, delete-orphan")


class OrderStatusHistory(Base):
    """Append-only log of order status transitions."""
    __tablename__ = "order_status_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status_id = Column(Uuid, ForeignKey("order_statuses.id"), nullable=True)
    to_status_id = Column(Uuid, ForeignKey("order_statuses.id"), nullable=False, index=True)
    changed_by_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    order = relationship("Order", back_populates="status_history")


class Milestone(Base):
    """Deliverable checkpoint within an order."""
    __tablename__ = "milestones"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    position = Column(Integer, nullable=False, default=0)
    requires_approval = Column(Boolean, nullable=False, default=False)
    progress_percent = Column(Integer, nullable=False, default=0)
    due_date = Column(DateTime(timezone=True), nullable=True, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    client_approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(MILESTONE_STATUSES), name="chk_milestone_status"),
    )

    order = relationship("Order", back_populates="milestones")
    tasks = relationship("Task", back_populates="milestone")


class Task(Base):
    """Unit of work inside an order, optionally grouped under a milestone."""
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    milestone_id = Column(Uuid, ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="TODO", index=True)
    priority = Column(String(20), nullable=False, default="MEDIUM")
    assignee_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    position = Column(Integer, nullable=False, default=0)
    due_date = Column(DateTime(timezone=True), nullable=True, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(TASK_STATUSES), name="chk_task_status"),
        CheckConstraint(priority.in_(PRIORITIES), name="chk_task_priority"),
    )

    order = relationship("Order", back_populates="tasks")
    milestone = relationship("Milestone", back_populates="tasks")
    assignee = relationship("User")


class TimeEntry(Base):
    """Logged working hours."""
    __tablename__ = "time_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    hours = Column(Numeric(6, 2), nullable=False)
    date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_billable = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(hours > 0, name="chk_time_entry_hours_positive"),
    )

    order = relationship("Order", back_populates="time_entries")
    task = relationship("Task")
    user = relationship("User")


class Comment(Base):
    """Order comment from staff or from the client portal."""
    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    client_name = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=False)
    is_portal_visible = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    order = relationship("Order", back_populates="comments")


class Invoice(Base):
    """Invoice issued to a client for an order."""
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    number = Column(String(50), unique=True, nullable=False, index=True)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)
    currency = Column(String(10), nullable=False, default="TJS")
    issue_date = Column(DateTime(timezone=True), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(14, 2), nullable=False, default=0)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(status.in_(INVOICE_STATUSES), name="chk_invoice_status"),
    )

    order = relationship("Order", back_populates="invoices")
    client = relationship("Client", back_populates="invoices")
    items = relationship(
        "InvoiceItem", back_populates="invoice", cascade="all, delete-orphan", order_by="InvoiceItem.position"
    )
    payments = relationship("Payment", back_populates="invoice", cascade="all, delete-orphan")


class InvoiceItem(Base):
    """Invoice line."""
    __tablename__ = "invoice_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    total = Column(Numeric(14, 2), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    invoice = relationship("Invoice", back_populates="items")


class Payment(Base):
    """Payment received against an invoice. Append-only."""
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    reference = Column(String(255), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(amount > 0, name="chk_payment_amount_positive"),
    )

    invoice = relationship("Invoice", back_populates="payments")


class Proposal(Base):
    """Commercial proposal (KP)."""
    __tablename__ = "proposals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    number = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)
    currency = Column(String(10), nullable=False, default="TJS")
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(status.in_(PROPOSAL_STATUSES), name="chk_proposal_status"),
    )

    client = relationship("Client", back_populates="proposals")
    order = relationship("Order")
    items = relationship(
        "ProposalItem", back_populates="proposal", cascade="all, delete-orphan", order_by="ProposalItem.position"
    )


class ProposalItem(Base):
    """Proposal line."""
    __tablename__ = "proposal_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    proposal_id = Column(Uuid, ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    total = Column(Numeric(14, 2), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    proposal = relationship("Proposal", back_populates="items")


class Ticket(Base):
    """Support desk ticket raised by a client."""
    __tablename__ = "tickets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    number = Column(String(50), unique=True, nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="OPEN", index=True)
    priority = Column(String(20), nullable=False, default="MEDIUM")
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    assignee_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(status.in_(TICKET_STATUSES), name="chk_ticket_status"),
        CheckConstraint(priority.in_(PRIORITIES), name="chk_ticket_priority"),
    )

    client = relationship("Client", back_populates="tickets")
    messages = relationship(
        "TicketMessage", back_populates="ticket", cascade="all, delete-orphan", order_by="TicketMessage.created_at"
    )


class TicketMessage(Base):
    """Message in a ticket thread."""
    __tablename__ = "ticket_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id = Column(Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    client_name = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    is_from_client = Column(Boolean, nullable=False, default=False)
    is_internal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    ticket = relationship("Ticket", back_populates="messages")


class Notification(Base):
    """In-app notification. One row per (event, recipient)."""
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    link_url = Column(String(500), nullable=True)
    entity_type = Column(String(30), nullable=True)
    entity_id = Column(Uuid, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(type.in_(NOTIFICATION_TYPES), name="chk_notification_type"),
        Index("idx_notifications_user_unread", "user_id", "is_read"),
    )

    user = relationship("User", back_populates="notifications")


class Settings(Base):
    """Singleton row holding document-number counters and prefixes."""
    __tablename__ = "settings"

    id = Column(String(20), primary_key=True, default=SETTINGS_ROW_ID)
    company_name = Column(String(255), nullable=False, default="ITL Solutions")
    order_prefix = Column(String(20), nullable=False, default="ORD")
    next_order_number = Column(Integer, nullable=False, default=1)
    invoice_prefix = Column(String(20), nullable=False, default="INV")
    next_invoice_number = Column(Integer, nullable=False, default=1)
    proposal_prefix = Column(String(20), nullable=False, default="KP")
    next_proposal_number = Column(Integer, nullable=False, default=1)
    ticket_prefix = Column(String(20), nullable=False, default="TKT")
    next_ticket_number = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(id == SETTINGS_ROW_ID, name="chk_settings_singleton"),
    )
