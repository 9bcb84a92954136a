"""
Calculadores de factores de compatibilidad.

Cada calculador recibe (UserPreferences, Property) y devuelve un
sub-score entero en [0, 100]. Son funciones puras: los parámetros de
penalización llegan como argumentos, nunca se leen de estado global.
"""

import math
from typing import Callable

from rentmatch.config import (
    DEFAULT_BEDROOM_PENALTY,
    DEFAULT_BUDGET_TOLERANCE_RATIO,
    DEFAULT_LOCATION_MISMATCH_SCORE,
    EARTH_RADIUS_MILES,
)
from rentmatch.models import Property, UserPreferences

MAX_SCORE = 100


def _clamp(value: float) -> int:
    return int(max(0, min(MAX_SCORE, math.floor(value + 0.5))))


def _normalize(value: str) -> str:
    return " ".join(value.strip().lower().split())


def budget_score(
    preferences: UserPreferences,
    prop: Property,
    tolerance_ratio: float = DEFAULT_BUDGET_TOLERANCE_RATIO,
) -> int:
    """
    100 si el precio cae en [budget_min, budget_max].

    Fuera del rango baja linealmente con la distancia al límite más
    cercano y llega a 0 cuando esa distancia alcanza la tolerancia:
    tolerance_ratio * budget_max (o budget_min si no hay máximo). La misma
    tolerancia aplica a ambos lados del rango. Un límite en None no restringe.
    """
    low, high = preferences.budget_min, preferences.budget_max
    if low is not None and high is not None and low > high:
        low, high = high, low

    price = prop.price
    if low is not None and price < low:
        distance = low - price
    elif high is not None and price > high:
        distance = price - high
    else:
        return MAX_SCORE

    reference = high if high is not None else low
    tolerance = max(reference * tolerance_ratio, 1.0)
    return _clamp(MAX_SCORE * (1 - distance / tolerance))


def bedroom_score(
    preferences: UserPreferences,
    prop: Property,
    penalty_per_room: int = DEFAULT_BEDROOM_PENALTY,
) -> int:
    """100 si coincide; si no, resta penalty_per_room por dormitorio de diferencia."""
    desired = preferences.preferred_bedrooms
    if not desired or prop.bedrooms in desired:
        return MAX_SCORE

    gap = min(abs(prop.bedrooms - count) for count in desired)
    return _clamp(MAX_SCORE - gap * penalty_per_room)


def amenity_score(preferences: UserPreferences, prop: Property) -> int:
    """Proporción de amenities deseados presentes en la propiedad."""
    desired = {_normalize(a) for a in preferences.preferred_amenities if a.strip()}
    if not desired:
        return MAX_SCORE

    available = {_normalize(a) for a in prop.amenities}
    matched = len(desired & available)
    return _clamp(MAX_SCORE * matched / len(desired))


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distancia en millas entre dos coordenadas."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


def location_score(
    preferences: UserPreferences,
    prop: Property,
    mismatch_score: int = DEFAULT_LOCATION_MISMATCH_SCORE,
) -> int:
    """
    Compatibilidad de ubicación.

    - Sin barrios ni punto de referencia: 100 (no hay restricción).
    - Ciudad o barrio dentro de preferred_locations o location_name: 100.
    - Dentro del radio de búsqueda: baja linealmente de 100 a mismatch_score
      según la distancia al punto de referencia. Radio 0 es "sin radio".
    - Cualquier otro caso: mismatch_score.
    """
    wanted = {_normalize(loc) for loc in preferences.location_names}
    if not wanted and not preferences.has_reference_point:
        return MAX_SCORE

    names = {_normalize(prop.city)}
    if prop.neighborhood:
        names.add(_normalize(prop.neighborhood))
    if wanted & names:
        return MAX_SCORE

    if preferences.has_reference_point and prop.has_coordinates:
        distance = haversine_miles(
            preferences.location_lat,
            preferences.location_lng,
            prop.latitude,
            prop.longitude,
        )
        radius = preferences.search_radius
        if radius > 0 and distance <= radius:
            return _clamp(MAX_SCORE - (MAX_SCORE - mismatch_score) * distance / radius)

    return _clamp(mismatch_score)


def feature_score(preferences: UserPreferences, prop: Property) -> int:
    """
    Promedio de coincidencias en pet-friendly, amoblado y cochera.

    Una feature coincide si el usuario no la pide o si la propiedad la tiene.
    """
    checks = [
        (preferences.pet_friendly, prop.pet_friendly),
        (preferences.furnished_preferred, prop.furnished),
        (preferences.parking_required, prop.parking_included),
    ]
    matched = sum(1 for wanted, has in checks if not wanted or has)
    return _clamp(MAX_SCORE * matched / len(checks))


FactorCalculator = Callable[[UserPreferences, Property], int]

FACTOR_CALCULATORS: dict[str, FactorCalculator] = {
    "budget": budget_score,
    "bedroom": bedroom_score,
    "amenity": amenity_score,
    "location": location_score,
    "feature": feature_score,
}


def compute_breakdown(
    preferences: UserPreferences,
    prop: Property,
    budget_tolerance_ratio: float = DEFAULT_BUDGET_TOLERANCE_RATIO,
    bedroom_penalty_per_room: int = DEFAULT_BEDROOM_PENALTY,
    location_mismatch_score: int = DEFAULT_LOCATION_MISMATCH_SCORE,
) -> dict[str, int]:
    """Corre todos los calculadores y devuelve el desglose factor -> sub-score."""
    return {
        "budget": budget_score(preferences, prop, budget_tolerance_ratio),
        "bedroom": bedroom_score(preferences, prop, bedroom_penalty_per_room),
        "amenity": amenity_score(preferences, prop),
        "location": location_score(preferences, prop, location_mismatch_score),
        "feature": feature_score(preferences, prop),
    }
