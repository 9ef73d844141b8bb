"""Errors raised by the entity services and translated to HTTP by the routes."""


class BookingServiceError(Exception):
    """Base class for expected, caller-facing service failures."""


class EntityNotFoundError(BookingServiceError):
    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} not found")
        self.entity = entity
        self.entity_id = entity_id


class EntityValidationError(BookingServiceError):
    """Input rejected before the store was touched."""


class EntityConflictError(BookingServiceError):
    """A record with the same unique field already exists."""


class InvalidCredentialsError(BookingServiceError):
    def __init__(self):
        super().__init__("Invalid credentials")
