from __future__ import annotations

from datetime import datetime, date
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from gms.extensions import db, bcrypt

JSONType = JSON().with_variant(JSONB, 'postgresql')


class TimestampedBase(db.Model):
    """Abstract base providing id/created/updated columns."""

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class WorkspaceRole(Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class PuzzleStatus(Enum):
    ACTIVE = "active"
    NEEDS_ATTENTION = "needs_attention"
    IN_MAINTENANCE = "in_maintenance"


class MaintenanceStatus(Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ReportStatus(Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class ReportPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _enum(enum_cls: type[Enum], name: str) -> SqlEnum:
    return SqlEnum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda members: [m.value for m in members],
    )


class User(TimestampedBase):
    __tablename__ = "user"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Coarse global role; workspace access is decided by Membership.role
    role: Mapped[WorkspaceRole] = mapped_column(
        _enum(WorkspaceRole, "global_role"),
        nullable=False,
        default=WorkspaceRole.USER,
    )

    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def set_password(self, password: str) -> None:
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))
        except ValueError:
            return False

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_active(self) -> bool:  # Flask-Login compatibility
        return True

    @property
    def is_anonymous(self) -> bool:
        return False

    def get_id(self) -> str:
        return str(self.id)


class Workspace(TimestampedBase):
    __tablename__ = "workspace"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
    games: Mapped[list["Game"]] = relationship(back_populates="workspace")
    invitations: Mapped[list["Invitation"]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )


class Membership(TimestampedBase):
    __tablename__ = "membership"
    __table_args__ = (
        UniqueConstraint("user_id", "workspace_id", name="uq_membership_user_workspace"),
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspace.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        _enum(WorkspaceRole, "workspace_role"),
        nullable=False,
        default=WorkspaceRole.USER,
    )

    user: Mapped[User] = relationship(back_populates="memberships")
    workspace: Mapped[Workspace] = relationship(back_populates="memberships")


class Invitation(TimestampedBase):
    __tablename__ = "invitation"

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspace.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        _enum(WorkspaceRole, "invitation_role"),
        nullable=False,
        default=WorkspaceRole.USER,
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    inviter_id: Mapped[int | None] = mapped_column(ForeignKey("user.id", ondelete="SET NULL"))

    workspace: Mapped[Workspace] = relationship(back_populates="invitations")
    inviter: Mapped[User | None] = relationship()


class Game(TimestampedBase):
    __tablename__ = "game"

    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspace.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        active_history=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    genre: Mapped[str] = mapped_column(String(128), nullable=False)
    release_date: Mapped[date | None] = mapped_column(Date)
    purchase_date: Mapped[date | None] = mapped_column(Date)
    description: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(String(512))

    workspace: Mapped[Workspace] = relationship(back_populates="games")
    puzzles: Mapped[list["Puzzle"]] = relationship(back_populates="game", passive_deletes=True)
    reports: Mapped[list["Report"]] = relationship(back_populates="game", passive_deletes=True)


class Puzzle(TimestampedBase):
    __tablename__ = "puzzle"

    game_id: Mapped[int] = mapped_column(
        ForeignKey("game.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        active_history=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    status: Mapped[PuzzleStatus] = mapped_column(
        _enum(PuzzleStatus, "puzzle_status"),
        nullable=False,
        default=PuzzleStatus.ACTIVE,
    )
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    image_url: Mapped[str | None] = mapped_column(String(512))

    game: Mapped[Game] = relationship(back_populates="puzzles")
    hints: Mapped[list["Hint"]] = relationship(back_populates="puzzle", passive_deletes=True)
    maintenance: Mapped[list["Maintenance"]] = relationship(back_populates="puzzle", passive_deletes=True)
    images: Mapped[list["PuzzleImage"]] = relationship(
        back_populates="puzzle",
        passive_deletes=True,
        order_by="PuzzleImage.id",
    )


class Hint(TimestampedBase):
    __tablename__ = "hint"

    puzzle_id: Mapped[int] = mapped_column(
        ForeignKey("puzzle.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        active_history=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    puzzle: Mapped[Puzzle] = relationship(back_populates="hints")


class Maintenance(TimestampedBase):
    __tablename__ = "maintenance"

    puzzle_id: Mapped[int] = mapped_column(
        ForeignKey("puzzle.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        active_history=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[MaintenanceStatus] = mapped_column(
        _enum(MaintenanceStatus, "maintenance_status"),
        nullable=False,
        default=MaintenanceStatus.PLANNED,
    )
    fix_date: Mapped[date] = mapped_column(Date, nullable=False)

    puzzle: Mapped[Puzzle] = relationship(back_populates="maintenance")


class Report(TimestampedBase):
    __tablename__ = "report"

    game_id: Mapped[int] = mapped_column(
        ForeignKey("game.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        active_history=True,
    )
    puzzle_id: Mapped[int | None] = mapped_column(
        ForeignKey("puzzle.id", ondelete="SET NULL"),
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    report_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    status: Mapped[ReportStatus] = mapped_column(
        _enum(ReportStatus, "report_status"),
        nullable=False,
        default=ReportStatus.OPEN,
    )
    priority: Mapped[ReportPriority] = mapped_column(
        _enum(ReportPriority, "report_priority"),
        nullable=False,
        default=ReportPriority.HIGH,
    )
    resolution: Mapped[str | None] = mapped_column(Text)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    game: Mapped[Game] = relationship(back_populates="reports")
    puzzle: Mapped[Puzzle | None] = relationship()
    images: Mapped[list["ReportImage"]] = relationship(
        back_populates="report",
        passive_deletes=True,
        order_by="ReportImage.id",
    )


class PuzzleImage(TimestampedBase):
    __tablename__ = "puzzle_image"

    puzzle_id: Mapped[int] = mapped_column(
        ForeignKey("puzzle.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        active_history=True,
    )
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    caption: Mapped[str | None] = mapped_column(String(512))
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    puzzle: Mapped[Puzzle] = relationship(back_populates="images")


class ReportImage(TimestampedBase):
    __tablename__ = "report_image"

    report_id: Mapped[int] = mapped_column(
        ForeignKey("report.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        active_history=True,
    )
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)

    report: Mapped[Report] = relationship(back_populates="images")


class AuditLog(TimestampedBase):
    __tablename__ = "audit_log"

    workspace_id: Mapped[int | None] = mapped_column(
        ForeignKey("workspace.id", ondelete="CASCADE"),
        index=True,
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("user.id", ondelete="SET NULL"),
        index=True,
    )
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(64))
    meta: Mapped[dict | None] = mapped_column(JSONType, default=dict)

    user: Mapped[User | None] = relationship()
