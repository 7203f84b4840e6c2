from __future__ import annotations

from statemachine import State, StateMachine

from chain_reaction.api.models import GameStatus


class GameFSM(StateMachine):
    """Guards the game status lifecycle.

    lobby -> active -> finished | runaway. Both end states are final; a restart
    builds a new game rather than walking a finished one backwards.
    """

    lobby = State(GameStatus.lobby.value, value=GameStatus.lobby.value, initial=True)
    active = State(GameStatus.active.value, value=GameStatus.active.value)
    finished = State(GameStatus.finished.value, value=GameStatus.finished.value, final=True)
    runaway = State(GameStatus.runaway.value, value=GameStatus.runaway.value, final=True)

    begin = lobby.to(active)
    declare_winner = active.to(finished)
    declare_runaway = active.to(runaway)

    def __init__(self, status: GameStatus):
        super().__init__(start_value=status.value)

    @property
    def status(self) -> GameStatus:
        return GameStatus(str(self.current_state.value))


def transition(status: GameStatus, event: str) -> GameStatus:
    """Apply `event` to `status` and return the resulting status.

    Raises `statemachine.exceptions.TransitionNotAllowed` for an illegal move through the lifecycle.
    """

    fsm = GameFSM(status)
    fsm.send(event)
    return fsm.status
