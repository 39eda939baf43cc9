import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from flux.models.base import Base
from flux.models.enums import TaskStatus, enum_values

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

# append-only; task_id/team_id are not FKs so rows can be cleared by the cascade in any order
class TaskStatusLog(Base):
    __tablename__ = "task_status_logs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    task_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    team_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)

    old_status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values), nullable=False
    )
    new_status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values), nullable=False
    )

    changed_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # python-side default keeps microsecond precision for ordering
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
