from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class RecordingNotifier:
    """Collects notifications in memory; recipients in ``fail_for`` raise on delivery."""

    name = "recording"

    def __init__(self, fail_for: tuple[str, ...] = ()) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail_for = set(fail_for)

    def notify(self, recipient_id: str, kind: str, title: str, message: str, data: dict[str, Any]) -> None:
        if recipient_id in self.fail_for:
            raise RuntimeError(f"delivery to {recipient_id} failed")
        self.sent.append({"recipient_id": recipient_id, "kind": kind, "title": title, "message": message, "data": data})

    def of_kind(self, kind: str) -> list[dict[str, Any]]:
        return [item for item in self.sent if item["kind"] == kind]


@pytest.fixture
def database(tmp_path):
    from sqlmodel import SQLModel, create_engine

    from panelgrade import db, models  # noqa: F401
    from panelgrade.settings import settings

    settings.data_dir = str(tmp_path / "data")
    settings.sqlite_path = str(tmp_path / "test.db")

    db.engine = create_engine(settings.sqlite_url, connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(db.engine)
    yield db.engine


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(database, notifier):
    pytest.importorskip("httpx")
    from fastapi.testclient import TestClient

    from panelgrade.main import app
    from panelgrade.pipeline.notify import get_configured_notifier

    app.dependency_overrides[get_configured_notifier] = lambda: notifier
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_configured_notifier, None)


@pytest.fixture
def seed(client):
    """Create a board and a team through the API and return their ids."""

    def _seed(
        faculty: list[str],
        students: list[str],
        supervisor: str | None = None,
    ) -> tuple[int, int]:
        board = client.post(
            "/api/boards",
            json={"name": "Board 1", "members": [{"faculty_id": f, "faculty_name": f"Dr. {f}"} for f in faculty]},
        )
        assert board.status_code == 201
        team = client.post(
            "/api/teams",
            json={
                "name": "Team Alpha",
                "supervisor_id": supervisor,
                "members": [{"student_id": s, "student_name": f"Student {s}"} for s in students],
            },
        )
        assert team.status_code == 201
        return board.json()["id"], team.json()["id"]

    return _seed


def submission_url(board_id: int, team_id: int, rater_id: str, phase: str = "A") -> str:
    return f"/api/evaluations/boards/{board_id}/teams/{team_id}/phases/{phase}/raters/{rater_id}"


def team_payload(mark: float, feedback: str = "") -> dict[str, Any]:
    return {"evaluation_type": "team", "team_mark": mark, "feedback": feedback}


def individual_payload(marks: dict[str, float]) -> dict[str, Any]:
    return {
        "evaluation_type": "individual",
        "individual_marks": [{"student_id": sid, "mark": mark} for sid, mark in marks.items()],
    }
