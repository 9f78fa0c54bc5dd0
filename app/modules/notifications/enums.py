from enum import Enum


class NotificationType(str, Enum):
    COMMENT = "comment"
    POST = "post"
    BOARD = "board"
    LINKED_ISSUE = "linked_issue"
    BRANCH = "branch"
