from typing import List, Optional, Tuple, Union
import logging

from sqlalchemy.orm import Session

from app.modules.linked_issues.enums import LinkType
from app.modules.linked_issues.models.linked_issue import LinkedIssue
from app.modules.notifications.schemas.events import LinkedIssueEvent
from app.modules.notifications.services.notification import NotificationService

logger = logging.getLogger(__name__)

_REVERSE = {
    LinkType.BLOCKS: LinkType.BLOCKED_BY,
    LinkType.BLOCKED_BY: LinkType.BLOCKS,
    LinkType.CAUSES: LinkType.CAUSED_BY,
    LinkType.CAUSED_BY: LinkType.CAUSES,
    LinkType.DUPLICATES: LinkType.DUPLICATED_BY,
    LinkType.DUPLICATED_BY: LinkType.DUPLICATES,
    LinkType.RELATES_TO: LinkType.RELATES_TO,
}

def get_reverse_status(link_type: Union[LinkType, str]) -> str:
    """Link type as seen from the related post; unknown types map to themselves"""
    value = link_type.value if isinstance(link_type, LinkType) else link_type
    try:
        return _REVERSE[LinkType(value)].value
    except ValueError:
        return value

def get_linked_issue(db: Session, link_id: int) -> Optional[LinkedIssue]:
    """Get linked issue by ID"""
    return db.query(LinkedIssue).filter(LinkedIssue.id == link_id).first()

def get_reverse_link(db: Session, link: LinkedIssue) -> Optional[LinkedIssue]:
    """Find the mirror entry stored on the related post"""
    return (
        db.query(LinkedIssue)
        .filter(
            LinkedIssue.origin_post_id == link.related_post_id,
            LinkedIssue.related_post_id == link.origin_post_id,
            LinkedIssue.link_type == get_reverse_status(link.link_type),
        )
        .first()
    )

def to_event(
    link: LinkedIssue,
    acting_user_id: int,
    created: bool = False,
    exists: bool = True,
) -> LinkedIssueEvent:
    return LinkedIssueEvent(
        link_id=link.id,
        origin_post_id=link.origin_post_id,
        related_post_id=link.related_post_id,
        link_type=link.link_type,
        linked_by=link.user_id,
        acting_user_id=acting_user_id,
        was_recently_created=created,
        exists=exists,
    )

def link_posts(
    db: Session,
    notifications: NotificationService,
    origin_post_id: int,
    related_post_id: int,
    link_type: Union[LinkType, str],
    acting_user_id: int,
) -> Tuple[LinkedIssue, LinkedIssue]:
    """Link two posts in both directions and notify about each side"""
    link_type = LinkType(link_type)
    link = LinkedIssue(
        link_type=link_type.value,
        origin_post_id=origin_post_id,
        related_post_id=related_post_id,
        user_id=acting_user_id,
    )
    reverse = LinkedIssue(
        link_type=get_reverse_status(link_type),
        origin_post_id=related_post_id,
        related_post_id=origin_post_id,
        user_id=acting_user_id,
    )
    db.add_all([link, reverse])
    db.flush()

    for entry in (link, reverse):
        notifications.notify(to_event(entry, acting_user_id, created=True))

    logger.info(f"User {acting_user_id} linked post {origin_post_id} to {related_post_id} ({link_type.value})")
    return link, reverse

def relink(
    db: Session,
    notifications: NotificationService,
    link: LinkedIssue,
    link_type: Union[LinkType, str],
    acting_user_id: int,
) -> LinkedIssue:
    """Change the type of a link and of its mirror entry"""
    link_type = LinkType(link_type)
    reverse = get_reverse_link(db, link)

    link.link_type = link_type.value
    affected = [link]
    if reverse is not None:
        reverse.link_type = get_reverse_status(link_type)
        affected.append(reverse)
    db.flush()

    for entry in affected:
        notifications.notify(to_event(entry, acting_user_id))
    return link

def unlink(
    db: Session,
    notifications: NotificationService,
    link: LinkedIssue,
    acting_user_id: int,
) -> List[LinkedIssue]:
    """Delete a link and its mirror entry, notifying about both"""
    affected = [link]
    reverse = get_reverse_link(db, link)
    if reverse is not None:
        affected.append(reverse)

    for entry in affected:
        notifications.notify(to_event(entry, acting_user_id, exists=False))
        db.delete(entry)
    db.flush()
    return affected
