from datetime import UTC, datetime

import pytest

from whm_alert.models import (
    Notification,
    NotificationKind,
    RunSnapshot,
    StatusCode,
    Transition,
    TransitionKind,
    normalize_status,
)


def test_normalize_status_is_case_insensitive_and_defaults_to_unknown() -> None:
    table = {"success": StatusCode.SUCCESS, "failed": StatusCode.FAILURE}
    assert normalize_status("SUCCESS", table) is StatusCode.SUCCESS
    assert normalize_status(" failed ", table) is StatusCode.FAILURE
    assert normalize_status("weird", table) is StatusCode.UNKNOWN
    assert normalize_status(None, table) is StatusCode.UNKNOWN
    assert normalize_status("", table) is StatusCode.UNKNOWN


def test_notification_json_matches_generic_webhook_format() -> None:
    t = datetime(2026, 2, 10, 12, 0, tzinfo=UTC)
    run = RunSnapshot(id="42", status=StatusCode.FAILURE, native_status="failure", url="https://ci/42", raw={"id": 42})
    n = Notification(kind=NotificationKind.FAILURE, repository="octo/app", run=run, timestamp=t)

    payload = n.to_json_dict()
    assert payload["event"] == "failure"
    assert payload["repository"] == "octo/app"
    assert payload["timestamp"] == "2026-02-10T12:00:00+00:00"
    assert payload["run"]["id"] == "42"
    assert payload["run"]["status"] == "failure"
    assert payload["run"]["raw"] == {"id": 42}


def test_notification_from_transition_rejects_non_alertable() -> None:
    t = datetime(2026, 2, 10, tzinfo=UTC)
    run = RunSnapshot(id="1", status=StatusCode.SUCCESS)
    with pytest.raises(ValueError):
        Notification.from_transition(
            Transition(TransitionKind.FIRST_OBSERVATION, run), repository="a/b", timestamp=t
        )

    n = Notification.from_transition(Transition(TransitionKind.RECOVERY, run), repository="a/b", timestamp=t)
    assert n.kind is NotificationKind.RECOVERY
    assert n.run is run
