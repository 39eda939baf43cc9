import re
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.models.note import TaskNote, TaskNoteMention
from flux.models.user import User

MENTION_RE = re.compile(r"@([a-zA-Z0-9_.~-]{2,30})")

def extract_handles(content: str) -> list[str]:
    # distinct, in order of first appearance
    return list(dict.fromkeys(MENTION_RE.findall(content or "")))

def resolve_mentions(db: Session, content: str) -> list[User]:
    handles = extract_handles(content)
    if not handles:
        return []
    return list(db.scalars(select(User).where(User.handle.in_(handles))).all())

def create_note(db: Session, task_id: uuid.UUID, author_id: uuid.UUID, content: str) -> tuple[TaskNote, list[TaskNoteMention]]:
    note = TaskNote(task_id=task_id, author_id=author_id, content=content)
    db.add(note)
    db.flush()

    mentions: list[TaskNoteMention] = []
    seen: set[uuid.UUID] = set()
    for user in resolve_mentions(db, content):
        if user.id in seen:
            continue
        seen.add(user.id)
        m = TaskNoteMention(note_id=note.id, user_id=user.id)
        db.add(m)
        mentions.append(m)
    db.flush()
    return note, mentions
