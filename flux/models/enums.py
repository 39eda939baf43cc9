from enum import Enum

class OrgRole(str, Enum):
    admin = "ADMIN"
    member = "MEMBER"

class TeamRole(str, Enum):
    leader = "LEADER"
    member = "MEMBER"

class TaskStatus(str, Enum):
    todo = "TODO"
    in_progress = "IN_PROGRESS"
    blocked = "BLOCKED"
    done = "DONE"

class TaskPriority(str, Enum):
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"

class CalendarEventType(str, Enum):
    event = "EVENT"
    task = "TASK"

# persist enum values ("ADMIN"), not member names
def enum_values(enum_cls: type[Enum]) -> list[str]:
    return [m.value for m in enum_cls]
