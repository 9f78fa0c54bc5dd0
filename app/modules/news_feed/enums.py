from enum import Enum


class NewsFeedMode(str, Enum):
    PERSONAL = "personal"
    OVERVIEW = "overview"


class NewsFeedCategory(str, Enum):
    WORKED_ON = "worked_on"
    TAGGED_IN = "tagged_in"
    COMMENTED = "commented_on"
    CREATED = "created"
    GENERATED_BRANCHES = "generated_branches"
    DONE_THIS_WEEK = "done_this_week"
    UPCOMING_DEADLINES = "upcoming_deadlines"
    BLOCKED = "blocked"
    ACTIVITY_ON = "activity_on"


# Every key a feed mode must expose, in display order
PERSONAL_CATEGORIES = [
    NewsFeedCategory.WORKED_ON,
    NewsFeedCategory.TAGGED_IN,
    NewsFeedCategory.COMMENTED,
    NewsFeedCategory.CREATED,
    NewsFeedCategory.GENERATED_BRANCHES,
    NewsFeedCategory.DONE_THIS_WEEK,
]

OVERVIEW_CATEGORIES = [
    NewsFeedCategory.ACTIVITY_ON,
    NewsFeedCategory.UPCOMING_DEADLINES,
    NewsFeedCategory.BLOCKED,
    NewsFeedCategory.GENERATED_BRANCHES,
    NewsFeedCategory.DONE_THIS_WEEK,
]
