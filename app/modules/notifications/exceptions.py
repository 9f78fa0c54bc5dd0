class NotificationContractError(TypeError):
    """Raised when notification code is called with an entity it cannot handle"""


class UnsupportedEntityError(NotificationContractError):
    def __init__(self, entity: object):
        kind = getattr(entity, "kind", None)
        super().__init__(f"Unsupported notifiable entity: {type(entity).__name__} (kind={kind!r})")


class EntityKindMismatchError(NotificationContractError):
    def __init__(self, parser: str, expected: str, entity: object):
        super().__init__(f"{parser} expects {expected}, {type(entity).__name__} given")
