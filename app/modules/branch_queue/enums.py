from enum import Enum


class BranchQueueOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
