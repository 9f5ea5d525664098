"""Exceptions raised out of the engine's service layer."""

from __future__ import annotations


class ForgeFlowError(Exception):
    """Base class for all ForgeFlow errors."""


class PersistenceFailure(ForgeFlowError):
    """
    The storage collaborator failed to save or load.

    In-memory engine state is still valid when this is raised; the caller
    may simply retry the save.
    """

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"Persistence failed during {operation}: {cause}")
        self.operation = operation
        self.cause = cause
