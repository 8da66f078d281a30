"""Repositories package - data access layer."""

from brainer.repositories.base import BaseRepository
from brainer.repositories.notes import NoteRepository, note_repository
from brainer.repositories.tags import TagRepository, tag_repository
from brainer.repositories.users import UserRepository, user_repository

__all__ = [
    "BaseRepository",
    "NoteRepository",
    "note_repository",
    "TagRepository",
    "tag_repository",
    "UserRepository",
    "user_repository",
]
