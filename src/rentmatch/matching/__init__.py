"""
Motor de matching.

Calcula la compatibilidad usuario-propiedad por factores, la pondera
en un score total y la persiste para rankings y lecturas rápidas.
"""

from rentmatch.matching.aggregator import aggregate
from rentmatch.matching.factors import FACTOR_CALCULATORS, compute_breakdown
from rentmatch.matching.service import (
    ComputeResult,
    MatchScoreService,
    RecomputeResult,
    ScoresResult,
)

__all__ = [
    "aggregate",
    "FACTOR_CALCULATORS",
    "compute_breakdown",
    "ComputeResult",
    "MatchScoreService",
    "RecomputeResult",
    "ScoresResult",
]
