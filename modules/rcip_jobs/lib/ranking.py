from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def rank_job_match(job: Mapping[str, Any], user_noc: str, user_teer: int) -> int:
    """
    Score 0..100 for how well a stored job fits a candidate's occupation.

      +40 exact NOC code, or +20 when the first three digits (minor group) match
      +30 exact TEER level, or +15 when one level apart
      +30 employer is verified

    Unclassified jobs (noc/teer_level None) can only earn the employer bonus.
    `job` is a row as returned by db.get_job().
    """
    score = 0

    noc = job.get("noc")
    user_noc = (user_noc or "").strip()
    if noc and user_noc:
        if noc == user_noc:
            score += 40
        elif len(user_noc) >= 3 and noc.startswith(user_noc[:3]):
            score += 20

    teer = job.get("teer_level")
    if teer is not None:
        if teer == user_teer:
            score += 30
        elif abs(teer - user_teer) == 1:
            score += 15

    if job.get("employer_verified"):
        score += 30

    return min(score, 100)
