from __future__ import annotations

from statemachine import State, StateMachine

from app.api.models import Session, SessionPhase


class SessionFSM(StateMachine):
    """FSM wrapper around a Session.

    - phases: active -> game_over
    - game_over is final; the engine refuses further actions once it is reached.
    """

    active = State(SessionPhase.active.value, value=SessionPhase.active.value, initial=True)
    game_over = State(SessionPhase.game_over.value, value=SessionPhase.game_over.value, final=True)

    conclude = active.to(game_over)

    def __init__(self, session: Session):
        self.session = session
        super().__init__(start_value=session.phase.value)

    @property
    def is_terminal(self) -> bool:
        return self.current_state == self.game_over

    def end_game(self, *, reason: str) -> None:
        self.conclude()
        self.session.is_game_over = True
        self.session.game_over_reason = reason
