from gms.models.models import (
    AuditLog,
    Game,
    Hint,
    Invitation,
    Maintenance,
    MaintenanceStatus,
    Membership,
    Puzzle,
    PuzzleImage,
    PuzzleStatus,
    Report,
    ReportImage,
    ReportPriority,
    ReportStatus,
    TimestampedBase,
    User,
    Workspace,
    WorkspaceRole,
)

__all__ = [
    "AuditLog",
    "Game",
    "Hint",
    "Invitation",
    "Maintenance",
    "MaintenanceStatus",
    "Membership",
    "Puzzle",
    "PuzzleImage",
    "PuzzleStatus",
    "Report",
    "ReportImage",
    "ReportPriority",
    "ReportStatus",
    "TimestampedBase",
    "User",
    "Workspace",
    "WorkspaceRole",
]
