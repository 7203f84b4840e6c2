from __future__ import annotations

from collections.abc import Sequence

from chain_reaction.api.models import GameState, Player
from chain_reaction.core.grid import count_player_orbs


def active_players(players: Sequence[Player]) -> list[Player]:
    return [p for p in players if not p.is_eliminated]


def check_eliminated(state: GameState) -> tuple[Player, ...]:
    """Refresh every player's orb count and apply eliminations.

    A player with no orbs is only eliminated once every player has had a turn
    (`move_count > len(players)`), and an eliminated player stays eliminated.
    """

    counts = count_player_orbs(state.grid, state.players)
    everyone_has_moved = state.move_count > len(state.players)

    out: list[Player] = []
    for player, orb_count in zip(state.players, counts):
        eliminated = player.is_eliminated or (orb_count == 0 and everyone_has_moved)
        out.append(player.model_copy(update={"orb_count": orb_count, "is_eliminated": eliminated}))
    return tuple(out)


def next_player(players: Sequence[Player], current_id: str) -> str:
    """Return who plays after `current_id`: round-robin over non-eliminated players, wrapping.

    If `current_id` is no longer active, the turn goes to the next active player after its seat.
    """

    if not any(not p.is_eliminated for p in players):
        raise ValueError("No active players")

    seat = next((i for i, p in enumerate(players) if p.id == current_id), None)
    if seat is None:
        return active_players(players)[0].id

    n = len(players)
    for step in range(1, n + 1):
        candidate = players[(seat + step) % n]
        if not candidate.is_eliminated:
            return candidate.id

    raise AssertionError("unreachable: an active player exists")


def check_win(players: Sequence[Player]) -> str | None:
    """Winner id if the game is decided, else None.

    With no active players left (not reachable through normal moves) the player
    holding the most orbs wins; the first one in turn order wins a tie.
    """

    remaining = active_players(players)
    if len(remaining) == 1:
        return remaining[0].id
    if remaining:
        return None

    best: Player | None = None
    for p in players:
        if best is None or p.orb_count > best.orb_count:
            best = p
    return best.id if best is not None else None
