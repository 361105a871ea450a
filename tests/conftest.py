"""
Pytest configuration & shared fixtures.
"""

from typing import Any, Dict, List

import pytest

from rest_migrator.events import ProgressTracker
from rest_migrator.models.progress import MigrationProgress
from tests.example.models import (
    ArticleModel,
    FailingArticleModel,
    FailingUserModel,
    UserModel,
)


class RecordingEventBus(ProgressTracker):
    """Tracker that also keeps every event in arrival order."""

    def __init__(self):
        super().__init__()
        self.events: List[Dict[str, Any]] = []

    async def save(self, progress: MigrationProgress) -> None:
        self.events.append({"kind": "save", "progress": progress})
        await super().save(progress)

    async def skip(self, progress: MigrationProgress) -> None:
        self.events.append({"kind": "skip", "progress": progress})
        await super().skip(progress)

    async def error(self, progress: MigrationProgress) -> None:
        self.events.append({"kind": "error", "progress": progress})
        await super().error(progress)

    def of_kind(self, kind: str) -> List[MigrationProgress]:
        return [event["progress"] for event in self.events if event["kind"] == kind]


@pytest.fixture(autouse=True)
def reset_tables():
    """Give every test empty in-memory tables."""
    for model in (UserModel, ArticleModel, FailingUserModel, FailingArticleModel):
        model.reset()
    yield


@pytest.fixture
def bus() -> RecordingEventBus:
    return RecordingEventBus()
