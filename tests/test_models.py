#!/usr/bin/env python3
"""
Tests for the task model's JSON form and timestamp parsing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from deku_tracker.models import Task, parse_timestamp

from conftest import T0


class TestParseTimestamp:

    @pytest.mark.parametrize("text", [
        "2024-01-01T12:00:00Z",
        "2024-01-01T12:00:00.000Z",
        "2024-01-01T12:00:00+00:00",
        "2024-01-01T12:00:00",
        "2024-01-01T12:00:00.0000000Z",
    ])
    def test_formats(self, text):
        assert parse_timestamp(text) == T0

    def test_offset_is_kept(self):
        parsed = parse_timestamp("2024-01-01T14:00:00+02:00")
        assert parsed == T0
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_empty(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestTaskJson:

    def test_top_level_shape(self):
        task = Task(id="t1", text="Buy milk", created_at=T0, cycle="1d", due_at=T0 + timedelta(days=1))

        assert task.to_dict() == {
            "id": "t1",
            "text": "Buy milk",
            "cycle": "1d",
            "createdAt": "2024-01-01T12:00:00+00:00",
            "dueAt": "2024-01-02T12:00:00+00:00",
            "completedAt": None,
            "subtasks": [],
        }

    def test_subtask_shape(self):
        sub = Task(id="s1", text="Child", created_at=T0, parent_id="t1")
        data = sub.to_dict()

        assert data["parentId"] == "t1"
        assert "subtasks" not in data

    def test_from_dict_nests_subtasks(self):
        task = Task.from_dict({
            "id": "t1",
            "text": "Parent",
            "createdAt": "2024-01-01T12:00:00Z",
            "subtasks": [{"id": "s1", "text": "Child", "createdAt": "2024-01-01T12:00:00Z",
                          "subtasks": [{"id": "deep", "text": "ignored"}]}],
        })

        assert task.subtasks[0].parent_id == "t1"
        assert task.subtasks[0].subtasks == []
        assert task.is_subtask is False

    def test_from_dict_defaults(self):
        before = datetime.now(timezone.utc)
        task = Task.from_dict({"id": 7, "cycle": ""})

        assert task.id == "7"
        assert task.text == ""
        assert task.cycle is None
        assert task.created_at >= before

    def test_from_dict_requires_id(self):
        with pytest.raises(KeyError):
            Task.from_dict({"text": "No id"})
