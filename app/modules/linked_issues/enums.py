from enum import Enum


class LinkType(str, Enum):
    RELATES_TO = "relates to"
    CAUSED_BY = "caused by"
    CAUSES = "causes"
    BLOCKED_BY = "blocked by"
    BLOCKS = "blocks"
    DUPLICATED_BY = "duplicated by"
    DUPLICATES = "duplicates"
