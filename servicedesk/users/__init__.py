"""Actor identity and the user directory collaborator."""

from .directory import (
    Actor,
    DirectoryRecipientResolver,
    RecipientResolver,
    Role,
    SqlUserDirectory,
    UserDirectory,
)

__all__ = [
    "Actor",
    "DirectoryRecipientResolver",
    "RecipientResolver",
    "Role",
    "SqlUserDirectory",
    "UserDirectory",
]
