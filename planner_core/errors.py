"""
Error taxonomy for the planner core.

ValidationError blocks a submission before any store call is made.
StoreError and NotFoundError come from the record store and are turned into
user-visible notices by the dashboard; none of them is fatal.
"""
from __future__ import annotations


class PlannerError(Exception):
    """Base class for all planner errors."""


class ValidationError(PlannerError):
    """A required form field is missing or invalid."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class StoreError(PlannerError):
    """The record store failed on a fetch or a mutation."""


class NotFoundError(StoreError):
    """The mutation target no longer exists for the current owner."""

    def __init__(self, collection: str, item_id: str) -> None:
        super().__init__(f"Record '{item_id}' not found in '{collection}'")
        self.collection = collection
        self.item_id = item_id
