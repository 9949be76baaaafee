"""
Module: ridepay_kernel.models.dispute
Responsibility: ORM persistence for ride-level and execution-level disputes
    and their comment threads.

Architecture position: Kernel > Models.

Invariants enforced:
    - Status values are a closed set (check constraints).
    - Comment threads are append-only and ordered by their per-dispute sequence;
      a ``before_update`` listener rejects edits to a stored comment.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ridepay_kernel.db.base import Base, TrackedBase, UUIDString, enum_check
from ridepay_kernel.domain.dtos import CommentInfo, ExecutionDisputeInfo, RideDisputeInfo
from ridepay_kernel.domain.workflow import (
    ActorRole,
    ExecutionDisputeStatus,
    ResolutionType,
    RideDisputeStatus,
)


class _CommentMixin:
    author_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    author_role: Mapped[str] = mapped_column(String(20), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> CommentInfo:
        return CommentInfo(
            id=self.id,
            author_id=self.author_id,
            author_role=self.author_role,
            body=self.body,
            created_at=self.created_at,
        )


class RideDispute(TrackedBase):
    """Staff-opened proposal to correct a ride record's hours."""

    __tablename__ = "ride_disputes"

    __table_args__ = (
        CheckConstraint(
            enum_check("status", RideDisputeStatus),
            name="ck_ride_disputes_status",
        ),
        CheckConstraint(
            "last_counter_role IS NULL OR " + enum_check("last_counter_role", ActorRole),
            name="ck_ride_disputes_counter_role",
        ),
    )

    ride_record_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("ride_records.id"), nullable=False, index=True,
    )
    opened_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    correction_hours: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RideDisputeStatus.PENDING_DRIVER.value,
    )
    opened_at: Mapped[datetime] = mapped_column(nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_counter_role: Mapped[str | None] = mapped_column(String(20), nullable=True)

    comments: Mapped[list["RideDisputeComment"]] = relationship(
        "RideDisputeComment",
        order_by="RideDisputeComment.sequence",
        lazy="selectin",
    )

    @property
    def dispute_status(self) -> RideDisputeStatus:
        return RideDisputeStatus(self.status)

    def to_dto(self) -> RideDisputeInfo:
        return RideDisputeInfo(
            id=self.id,
            ride_record_id=self.ride_record_id,
            opened_by_id=self.opened_by_id,
            correction_hours=self.correction_hours,
            status=self.dispute_status,
            opened_at=self.opened_at,
            closed_at=self.closed_at,
            last_counter_role=self.last_counter_role,
            comments=tuple(c.to_dto() for c in self.comments),
        )


class RideDisputeComment(_CommentMixin, Base):
    __tablename__ = "ride_dispute_comments"

    __table_args__ = (
        UniqueConstraint("dispute_id", "sequence", name="uq_ride_dispute_comments_seq"),
    )

    dispute_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("ride_disputes.id"), nullable=False,
    )


class ExecutionDispute(TrackedBase):
    """Driver-opened objection to a rejected ride execution."""

    __tablename__ = "execution_disputes"

    __table_args__ = (
        CheckConstraint(
            enum_check("status", ExecutionDisputeStatus),
            name="ck_execution_disputes_status",
        ),
        CheckConstraint(
            "resolution_type IS NULL OR " + enum_check("resolution_type", ResolutionType),
            name="ck_execution_disputes_resolution_type",
        ),
    )

    ride_execution_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("ride_executions.id"), nullable=False, index=True,
    )
    opened_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExecutionDisputeStatus.OPEN.value,
    )
    opened_at: Mapped[datetime] = mapped_column(nullable=False)
    resolved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolution_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    corrected_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    comments: Mapped[list["ExecutionDisputeComment"]] = relationship(
        "ExecutionDisputeComment",
        order_by="ExecutionDisputeComment.sequence",
        lazy="selectin",
    )

    @property
    def dispute_status(self) -> ExecutionDisputeStatus:
        return ExecutionDisputeStatus(self.status)

    def to_dto(self) -> ExecutionDisputeInfo:
        return ExecutionDisputeInfo(
            id=self.id,
            ride_execution_id=self.ride_execution_id,
            opened_by_id=self.opened_by_id,
            reason=self.reason,
            status=self.dispute_status,
            opened_at=self.opened_at,
            resolved_by_id=self.resolved_by_id,
            resolved_at=self.resolved_at,
            resolution_notes=self.resolution_notes,
            resolution_type=(
                ResolutionType(self.resolution_type) if self.resolution_type else None
            ),
            corrected_hours=self.corrected_hours,
            closed_at=self.closed_at,
            comments=tuple(c.to_dto() for c in self.comments),
        )


class ExecutionDisputeComment(_CommentMixin, Base):
    __tablename__ = "execution_dispute_comments"

    __table_args__ = (
        UniqueConstraint(
            "dispute_id", "sequence", name="uq_execution_dispute_comments_seq",
        ),
    )

    dispute_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("execution_disputes.id"), nullable=False,
    )


@event.listens_for(RideDisputeComment, "before_update")
@event.listens_for(ExecutionDisputeComment, "before_update")
def _reject_comment_update(mapper, connection, target):
    raise ValueError(f"Dispute comments are append-only: {target.id}")
