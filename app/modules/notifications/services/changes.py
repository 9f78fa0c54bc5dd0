"""
Post change classification.

Turns the difference between two post snapshots into human readable messages,
plus the personal and overview variants written to the news feed.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.timeutils import utcnow
from app.modules.boards.services.board import get_board_title
from app.modules.posts.schemas.post import PostSnapshot
from app.modules.user_management.services.user import get_user_names

logger = logging.getLogger(__name__)

# Metadata columns, never reported as a change
IGNORED_FIELDS = {"id", "created_at", "updated_at"}

# Changes to these fields are pushed to open boards in realtime
VISIBLE_FIELDS = {"column", "title", "desc", "assignee_id", "deadline", "priority", "pinned"}

UNASSIGNED = "Unassigned"

Change = Tuple[Any, Any]


@dataclass
class ChangeContext:
    post_id: int
    board_title: str
    actor_name: str


@dataclass
class FieldChange:
    """One classified field change"""
    field: str
    message: str
    personal: str
    overview: str
    done: bool = False


def diff_snapshots(previous: Optional[PostSnapshot], current: PostSnapshot) -> Dict[str, Change]:
    """Map each changed field to its (old, new) pair, in declaration order"""
    if previous is None:
        return {}

    before = previous.model_dump()
    after = current.model_dump()
    changes = {}
    for field, new in after.items():
        if field in IGNORED_FIELDS:
            continue
        old = before.get(field)
        if old != new:
            changes[field] = (old, new)
    return changes


def has_visible_changes(changes: Dict[str, Change]) -> bool:
    return any(field in VISIBLE_FIELDS for field in changes)


def format_deadline(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d-%m-%Y")


def is_recently_created(post: PostSnapshot, now: Optional[datetime] = None) -> bool:
    """A post counts as new for the configured window after its creation"""
    if post.created_at is None:
        return True
    now = now or utcnow()
    window = timedelta(minutes=settings.POST_CREATION_WINDOW_MINUTES)
    return now - post.created_at <= window


def describe_changes(
    db: Session,
    changes: Dict[str, Change],
    context: ChangeContext,
) -> List[FieldChange]:
    """
    Classify every changed field.

    An assignee id that does not resolve to a user makes the whole batch
    unusable: the anomaly is logged and an empty list is returned, including
    for the fields that classified fine.

    Args:
        db: Database session
        changes: Output of diff_snapshots
        context: Post and actor labels used in the messages

    Returns:
        One FieldChange per classified field, in the order of changes
    """
    result = []
    for field, (old, new) in changes.items():
        if field == "assignee_id":
            names = _resolve_assignees(db, old, new)
            if names is None:
                logger.error(
                    f"Assignee change on post {context.post_id} references unknown users "
                    f"({old} -> {new}); dropping {len(changes)} change message(s)"
                )
                return []
            change = _assignee_change(context, *names)
        elif field == "board_id":
            change = _board_change(context, get_board_title(db, old), get_board_title(db, new))
        else:
            describe = _DESCRIBERS.get(field)
            if describe is None:
                continue
            change = describe(context, old, new)
        result.append(change)
    return result


def classify_changes(db: Session, changes: Dict[str, Change], context: ChangeContext) -> List[str]:
    """Messages only, as shown in notifications"""
    return [change.message for change in describe_changes(db, changes, context)]


def _resolve_assignees(db: Session, old: Optional[int], new: Optional[int]) -> Optional[Tuple[str, str]]:
    names = get_user_names(db, [old, new])
    resolved = []
    for user_id in (old, new):
        if user_id is None:
            resolved.append(UNASSIGNED)
        elif user_id in names:
            resolved.append(names[user_id])
        else:
            return None
    return resolved[0], resolved[1]


def _title_change(context: ChangeContext, old, new) -> FieldChange:
    return FieldChange(
        field="title",
        message=f'Post #{context.post_id} ({context.board_title}) title was changed from "{old}" to "{new}"',
        personal=f'You changed the title of post #{context.post_id} from "{old}" to "{new}"',
        overview=f'{context.actor_name} changed the title of post #{context.post_id} from "{old}" to "{new}"',
    )


def _column_change(context: ChangeContext, old, new) -> FieldChange:
    return FieldChange(
        field="column",
        message=f'Post #{context.post_id} ({context.board_title}) was moved to column "{new}"',
        personal=f'You moved post #{context.post_id} to column "{new}"',
        overview=f'{context.actor_name} moved post #{context.post_id} to column "{new}"',
        done=new == settings.DONE_COLUMN,
    )


def _priority_change(context: ChangeContext, old, new) -> FieldChange:
    return FieldChange(
        field="priority",
        message=f'Post #{context.post_id} ({context.board_title}) priority was changed from "{old}" to "{new}"',
        personal=f'You changed the priority of post #{context.post_id} from "{old}" to "{new}"',
        overview=f'{context.actor_name} changed the priority of post #{context.post_id} from "{old}" to "{new}"',
    )


def _desc_change(context: ChangeContext, old, new) -> FieldChange:
    return FieldChange(
        field="desc",
        message=f"Post #{context.post_id} ({context.board_title}) description was updated",
        personal=f"You updated the description of post #{context.post_id}",
        overview=f"{context.actor_name} updated the description of post #{context.post_id}",
    )


def _deadline_change(context: ChangeContext, old, new) -> FieldChange:
    old_deadline = format_deadline(old)
    new_deadline = format_deadline(new)
    prefix = f"Post #{context.post_id} ({context.board_title}) deadline"

    if new_deadline is None:
        return FieldChange(
            field="deadline",
            message=f"{prefix} was removed",
            personal=f"You removed the deadline of post #{context.post_id}",
            overview=f"{context.actor_name} removed the deadline of post #{context.post_id}",
        )
    if old_deadline is None:
        return FieldChange(
            field="deadline",
            message=f"{prefix} was set to {new_deadline}",
            personal=f"You set the deadline of post #{context.post_id} to {new_deadline}",
            overview=f"{context.actor_name} set the deadline of post #{context.post_id} to {new_deadline}",
        )
    return FieldChange(
        field="deadline",
        message=f"{prefix} was changed from {old_deadline} to {new_deadline}",
        personal=f"You changed the deadline of post #{context.post_id} from {old_deadline} to {new_deadline}",
        overview=(
            f"{context.actor_name} changed the deadline of post #{context.post_id} "
            f"from {old_deadline} to {new_deadline}"
        ),
    )


def _assignee_change(context: ChangeContext, old_name: str, new_name: str) -> FieldChange:
    return FieldChange(
        field="assignee_id",
        message=f"Assignee changed from {old_name} to {new_name} on post #{context.post_id} ({context.board_title})",
        personal=f"You reassigned post #{context.post_id} from {old_name} to {new_name}",
        overview=f"{context.actor_name} reassigned post #{context.post_id} from {old_name} to {new_name}",
    )


def _board_change(context: ChangeContext, old_title: str, new_title: str) -> FieldChange:
    return FieldChange(
        field="board_id",
        message=f"Post #{context.post_id} ({old_title}) was moved to board {new_title}",
        personal=f"You moved post #{context.post_id} to board {new_title}",
        overview=f"{context.actor_name} moved post #{context.post_id} to board {new_title}",
    )


_DESCRIBERS = {
    "title": _title_change,
    "column": _column_change,
    "priority": _priority_change,
    "desc": _desc_change,
    "deadline": _deadline_change,
}
