import pytest

from config import env_choice

SCOPES = ("history", "window")


def test_env_choice_default(monkeypatch):
    monkeypatch.delenv("TIMELINE_CUMULATIVE_SCOPE", raising=False)
    assert env_choice("TIMELINE_CUMULATIVE_SCOPE", "history", SCOPES) == "history"


def test_env_choice_normalises_case(monkeypatch):
    monkeypatch.setenv("TIMELINE_CUMULATIVE_SCOPE", " Window ")
    assert env_choice("TIMELINE_CUMULATIVE_SCOPE", "history", SCOPES) == "window"


def test_env_choice_rejects_unknown_value(monkeypatch):
    monkeypatch.setenv("TIMELINE_CUMULATIVE_SCOPE", "forever")

    with pytest.raises(RuntimeError, match="TIMELINE_CUMULATIVE_SCOPE must be one of history, window"):
        env_choice("TIMELINE_CUMULATIVE_SCOPE", "history", SCOPES)
