from flux.models.calendar_event import CalendarEvent
from flux.models.identity import Identity
from flux.models.join_code import OrgJoinCode, TeamJoinCode
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.note import TaskNote, TaskNoteMention
from flux.models.org import Organization
from flux.models.status_log import TaskStatusLog
from flux.models.task import Task, TaskAssignment
from flux.models.team import Goal, Team, TeamLink
from flux.models.user import User

__all__ = [
    "User",
    "Identity",
    "Organization",
    "OrgMembership",
    "OrgJoinCode",
    "Team",
    "TeamMembership",
    "TeamLink",
    "TeamJoinCode",
    "Goal",
    "Task",
    "TaskAssignment",
    "TaskNote",
    "TaskNoteMention",
    "TaskStatusLog",
    "CalendarEvent",
]
