from __future__ import annotations

from chain_reaction.api.models import (
    ExplosionRecord,
    Grid,
    MoveAnimations,
    OrbMovementRecord,
    PlacementRecord,
)
from chain_reaction.core.explosions import MAX_EXPLOSION_WAVES, explosion_waves
from chain_reaction.moves import place_orb_on_grid

WAVE_DELAY_MS = 150
ORB_DELAY_MS = 30


def plan_move_animations(
    grid: Grid,
    player_id: str,
    color: str,
    row: int,
    col: int,
    *,
    max_waves: int = MAX_EXPLOSION_WAVES,
) -> MoveAnimations:
    """Describe a move as placement, explosion, and orb-movement records for a presentation layer.

    `grid` is the board *before* the move. The waves come from the same simulation
    the move processor runs, and every id is derived from (row, col, wave) only, so
    recomputing from the same inputs yields identical records.
    """

    placement = PlacementRecord(id=f"placement-{row}-{col}", row=row, col=col, color=color)

    explosions: list[ExplosionRecord] = []
    orb_movements: list[OrbMovementRecord] = []

    for wave in explosion_waves(place_orb_on_grid(grid, player_id, row, col), player_id, max_waves):
        delay = wave.index * WAVE_DELAY_MS
        for r, c in wave.exploded:
            explosions.append(
                ExplosionRecord(
                    id=f"explosion-{r}-{c}-{wave.index}",
                    row=r,
                    col=c,
                    color=color,
                    wave=wave.index,
                    delay_ms=delay,
                )
            )
        for t in wave.transfers:
            (fr, fc), (tr, tc) = t.source, t.target
            orb_movements.append(
                OrbMovementRecord(
                    id=f"orb-{fr}-{fc}-to-{tr}-{tc}-{wave.index}-{t.index}",
                    from_row=fr,
                    from_col=fc,
                    to_row=tr,
                    to_col=tc,
                    color=color,
                    wave=wave.index,
                    delay_ms=delay + ORB_DELAY_MS,
                )
            )

    return MoveAnimations(placement=placement, explosions=explosions, orb_movements=orb_movements)
