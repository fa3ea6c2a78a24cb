from __future__ import annotations

from dataclasses import dataclass, field

from .models import NO_TRANSITION, RunSnapshot, StatusCode, Transition, TransitionKind


@dataclass(frozen=True, slots=True)
class DetectorState:
    """
    detector 唯一的状态：最后一次观察到的 run id（None 表示尚未建立基线）。

    只存在于进程内存，重启即遗忘。
    """

    last_seen_id: str | None = None


def advance(state: DetectorState, snapshot: RunSnapshot | None) -> tuple[DetectorState, Transition]:
    """
    状态转移函数（边沿触发：只在 run id 变化时分类）。

    - 没有 run：NONE，状态不变
    - 首次观察：记录 id，FIRST_OBSERVATION（没有基线可比，不告警）
    - 同一 id 再次出现：NONE（状态原地变化也不告警）
    - 新 id：记录 id，按状态分类为 FAILURE / RECOVERY / IN_PROGRESS
    """
    if snapshot is None:
        return state, NO_TRANSITION

    if state.last_seen_id is None:
        return DetectorState(last_seen_id=snapshot.id), Transition(TransitionKind.FIRST_OBSERVATION, snapshot)

    if snapshot.id == state.last_seen_id:
        return state, NO_TRANSITION

    new_state = DetectorState(last_seen_id=snapshot.id)
    if snapshot.status is StatusCode.FAILURE:
        return new_state, Transition(TransitionKind.FAILURE, snapshot)
    if snapshot.status is StatusCode.SUCCESS:
        return new_state, Transition(TransitionKind.RECOVERY, snapshot)
    # PENDING / UNKNOWN：新 run 尚未结束，不归为恢复。
    return new_state, Transition(TransitionKind.IN_PROGRESS, snapshot)


@dataclass(slots=True)
class TransitionDetector:
    state: DetectorState = field(default_factory=DetectorState)

    @property
    def last_seen_id(self) -> str | None:
        return self.state.last_seen_id

    def observe(self, snapshot: RunSnapshot | None) -> Transition:
        self.state, transition = advance(self.state, snapshot)
        return transition
