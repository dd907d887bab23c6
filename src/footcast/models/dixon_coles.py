from __future__ import annotations

import numpy as np
from dataclasses import dataclass
from scipy.stats import poisson

from footcast.models.strength import AdjustedTeamStrength, TeamStrength
from footcast.utils import format_score

# Dixon–Coles low-score adjustment tau
def _tau(hg: int, ag: int, lam: float, mu: float, rho: float) -> float:
    if hg == 0 and ag == 0:
        return 1.0 - (lam * mu * rho)
    if hg == 0 and ag == 1:
        return 1.0 + (lam * rho)
    if hg == 1 and ag == 0:
        return 1.0 + (mu * rho)
    if hg == 1 and ag == 1:
        return 1.0 - rho
    return 1.0

@dataclass(frozen=True)
class OutcomeProbabilities:
    p_home: float
    p_draw: float
    p_away: float
    eg_home: float
    eg_away: float
    p_over25: float
    p_btts: float
    most_likely_score: str

    def as_market(self) -> dict[str, float]:
        return {"HOME": self.p_home, "DRAW": self.p_draw, "AWAY": self.p_away}

def score_matrix(lam: float, mu: float, rho: float = -0.13, max_goals: int = 10) -> np.ndarray:
    """
    (max_goals+1, max_goals+1) matrix, P[h, a] = P(home scores h, away scores a).
    Independent Poisson with the tau correction on 0-0/1-0/0-1/1-1, renormalised.
    """
    if lam <= 0 or mu <= 0:
        raise ValueError(f"expected goals must be positive, got lam={lam}, mu={mu}")
    m = max_goals
    ph = poisson.pmf(np.arange(m+1), lam)
    pa = poisson.pmf(np.arange(m+1), mu)

    P = np.outer(ph, pa)

    for hg in range(0, 2):
        for ag in range(0, 2):
            P[hg, ag] *= max(1e-9, _tau(hg, ag, lam, mu, rho))

    s = P.sum()
    if s <= 0:
        raise ValueError("degenerate score matrix")
    return P / s

def predict_1x2(
    strength: TeamStrength | AdjustedTeamStrength,
    rho: float = -0.13,
    max_goals: int = 10,
) -> OutcomeProbabilities:
    """Outcome, over-2.5 and both-teams-score probabilities for a strength record."""
    lam, mu = strength.expected_goals()
    P = score_matrix(lam, mu, rho=rho, max_goals=max_goals)
    m = max_goals

    p_home = float(np.tril(P, -1).sum())
    p_draw = float(np.trace(P))
    p_away = float(np.triu(P,  1).sum())

    p_over25 = float(P[(np.add.outer(np.arange(m+1), np.arange(m+1)) >= 3)].sum())
    p_btts = float(P[1:, 1:].sum())

    hg, ag = np.unravel_index(int(np.argmax(P)), P.shape)

    return OutcomeProbabilities(
        p_home=p_home,
        p_draw=p_draw,
        p_away=p_away,
        eg_home=float(lam),
        eg_away=float(mu),
        p_over25=p_over25,
        p_btts=p_btts,
        most_likely_score=format_score(int(hg), int(ag)),
    )
