from crush.constants import SCORE_SANITY_CEILING


def is_score_plausible(points: int, *, ceiling: int = SCORE_SANITY_CEILING) -> bool:
    """Basic heuristic: a single award must be positive and below the sanity ceiling."""
    return 0 < points < ceiling
