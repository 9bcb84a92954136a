"""
Agregación de factores en un score total.
"""

import math
from typing import Mapping, Optional

from rentmatch.config import DEFAULT_MATCH_WEIGHTS


def aggregate(
    breakdown: Mapping[str, Optional[float]],
    weights: Optional[Mapping[str, float]] = None,
) -> int:
    """
    Suma ponderada del desglose, redondeada al entero más cercano.

    Un factor ausente (o en None) no aporta y su peso se reparte entre
    los presentes. Factores desconocidos para la tabla de pesos se ignoran.
    Un desglose vacío da 0.

    Args:
        breakdown: factor -> sub-score (0-100)
        weights: factor -> peso; por defecto DEFAULT_MATCH_WEIGHTS

    Returns:
        Score total entre 0 y 100
    """
    weights = DEFAULT_MATCH_WEIGHTS if weights is None else weights

    weighted_sum = 0.0
    weight_total = 0.0
    for factor, weight in weights.items():
        value = breakdown.get(factor)
        if value is None or weight <= 0:
            continue
        weighted_sum += weight * min(100.0, max(0.0, float(value)))
        weight_total += weight

    if weight_total == 0:
        return 0

    return int(min(100, max(0, math.floor(weighted_sum / weight_total + 0.5))))
