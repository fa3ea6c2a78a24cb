import pytest

from whm_alert.detector import DetectorState, TransitionDetector, advance
from whm_alert.models import RunSnapshot, StatusCode, TransitionKind


def _run(run_id: str, status: StatusCode) -> RunSnapshot:
    return RunSnapshot(id=run_id, status=status)


@pytest.mark.parametrize("status", list(StatusCode))
def test_first_observation_never_alerts(status: StatusCode) -> None:
    detector = TransitionDetector()
    transition = detector.observe(_run("A", status))
    assert transition.kind is TransitionKind.FIRST_OBSERVATION
    assert not transition.is_alertable
    assert detector.last_seen_id == "A"


def test_no_run_leaves_state_unchanged() -> None:
    detector = TransitionDetector()
    assert detector.observe(None).kind is TransitionKind.NONE
    assert detector.last_seen_id is None

    detector.observe(_run("A", StatusCode.SUCCESS))
    assert detector.observe(None).kind is TransitionKind.NONE
    assert detector.last_seen_id == "A"


def test_repeated_id_emits_none_after_first_observation() -> None:
    detector = TransitionDetector()
    kinds = [detector.observe(_run("A", StatusCode.FAILURE)).kind for _ in range(5)]
    assert kinds[0] is TransitionKind.FIRST_OBSERVATION
    assert kinds[1:] == [TransitionKind.NONE] * 4


def test_status_change_on_same_id_does_not_alert() -> None:
    detector = TransitionDetector()
    detector.observe(_run("A", StatusCode.PENDING))
    transition = detector.observe(_run("A", StatusCode.FAILURE))
    assert transition.kind is TransitionKind.NONE


def test_failure_then_recovery_on_new_ids() -> None:
    detector = TransitionDetector()
    assert detector.observe(_run("A", StatusCode.FAILURE)).kind is TransitionKind.FIRST_OBSERVATION

    failure = detector.observe(_run("B", StatusCode.FAILURE))
    assert failure.kind is TransitionKind.FAILURE
    assert failure.snapshot is not None and failure.snapshot.id == "B"

    # 同一个失败 run 再次被观察到，不重复告警
    assert detector.observe(_run("B", StatusCode.FAILURE)).kind is TransitionKind.NONE

    recovery = detector.observe(_run("C", StatusCode.SUCCESS))
    assert recovery.kind is TransitionKind.RECOVERY
    assert recovery.snapshot is not None and recovery.snapshot.id == "C"


@pytest.mark.parametrize("status", [StatusCode.PENDING, StatusCode.UNKNOWN])
def test_new_unfinished_run_is_in_progress(status: StatusCode) -> None:
    detector = TransitionDetector()
    detector.observe(_run("A", StatusCode.FAILURE))
    transition = detector.observe(_run("B", status))
    assert transition.kind is TransitionKind.IN_PROGRESS
    assert not transition.is_alertable
    assert detector.last_seen_id == "B"

    # B 在原地结束不会再触发分类
    assert detector.observe(_run("B", StatusCode.SUCCESS)).kind is TransitionKind.NONE


def test_at_most_one_alert_per_distinct_id() -> None:
    detector = TransitionDetector()
    sequence = ["A", "A", "B", "B", "B", "C", "C", "D"]
    alerts: dict[str, int] = {}
    for run_id in sequence:
        t = detector.observe(_run(run_id, StatusCode.FAILURE))
        if t.is_alertable:
            alerts[run_id] = alerts.get(run_id, 0) + 1
    assert alerts == {"B": 1, "C": 1, "D": 1}


def test_advance_is_pure() -> None:
    state = DetectorState(last_seen_id="A")
    new_state, transition = advance(state, _run("B", StatusCode.FAILURE))
    assert state.last_seen_id == "A"
    assert new_state.last_seen_id == "B"
    assert transition.kind is TransitionKind.FAILURE
