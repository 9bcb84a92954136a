"""
Tests de los calculadores de factores (funciones puras, sin base).
"""

import pytest

from rentmatch.matching.factors import (
    FACTOR_CALCULATORS,
    amenity_score,
    bedroom_score,
    budget_score,
    compute_breakdown,
    feature_score,
    haversine_miles,
    location_score,
)
from rentmatch.models import Property, UserPreferences

from tests.builders import make_preferences, make_property


@pytest.fixture
def preferences():
    return UserPreferences.model_validate(make_preferences())


@pytest.fixture
def prop():
    return Property.model_validate(make_property("prop-1"))


class TestBudgetScore:
    """Ajuste de precio contra el rango de presupuesto."""

    @pytest.mark.parametrize("price", [2000, 2500, 2800, 3000])
    def test_inside_range_is_full_score(self, preferences, price):
        prop = Property.model_validate(make_property("p", price=price))
        assert budget_score(preferences, prop) == 100

    def test_far_above_range_is_zero(self, preferences):
        prop = Property.model_validate(make_property("p", price=5000))
        assert budget_score(preferences, prop) == 0

    def test_penalty_is_monotonic_above_max(self, preferences):
        scores = [
            budget_score(preferences, Property.model_validate(make_property("p", price=price)))
            for price in (3000, 3200, 3500, 4000, 4500, 6000)
        ]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 100
        assert scores[-1] == 0

    def test_penalty_is_monotonic_below_min(self, preferences):
        scores = [
            budget_score(preferences, Property.model_validate(make_property("p", price=price)))
            for price in (2000, 1800, 1500, 1000, 0)
        ]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 100
        assert scores[-1] == 0

    def test_linear_degradation(self, preferences):
        # Tolerancia = 50% de 3000 = 1500; a 750 de distancia queda la mitad
        prop = Property.model_validate(make_property("p", price=3750))
        assert budget_score(preferences, prop) == 50

    def test_same_distance_scores_the_same_on_both_sides(self, preferences):
        below = Property.model_validate(make_property("p", price=1500))
        above = Property.model_validate(make_property("p", price=3500))
        assert budget_score(preferences, below) == budget_score(preferences, above) == 67

    def test_closer_price_never_scores_lower_across_sides(self, preferences):
        # 500 por debajo del mínimo contra 600 por encima del máximo
        below = Property.model_validate(make_property("p", price=1500))
        above = Property.model_validate(make_property("p", price=3600))
        assert budget_score(preferences, below) > budget_score(preferences, above)

    def test_only_min_bound_sets_tolerance(self):
        prefs = UserPreferences(budget_min=2000, budget_max=None)
        prop = Property.model_validate(make_property("p", price=1500))
        assert budget_score(prefs, prop) == 50

    def test_missing_bounds_do_not_restrict(self, prop):
        open_budget = UserPreferences(budget_min=None, budget_max=None)
        assert budget_score(open_budget, prop) == 100

    def test_inverted_range_is_normalized(self, prop):
        inverted = UserPreferences(budget_min=3000, budget_max=2000)
        assert budget_score(inverted, prop) == 100


class TestBedroomScore:
    """Coincidencia de dormitorios."""

    def test_desired_count_is_full_score(self, preferences, prop):
        assert bedroom_score(preferences, prop) == 100

    def test_penalty_uses_nearest_desired_count(self, preferences):
        prop = Property.model_validate(make_property("p", bedrooms=4))
        # Más cercano: 2 -> diferencia 2 -> 100 - 2 * 25
        assert bedroom_score(preferences, prop) == 50

    def test_penalty_floors_at_zero(self, preferences):
        prop = Property.model_validate(make_property("p", bedrooms=9))
        assert bedroom_score(preferences, prop) == 0

    def test_no_preference_is_full_score(self, prop):
        assert bedroom_score(UserPreferences(preferred_bedrooms=[]), prop) == 100

    def test_custom_penalty(self, preferences):
        prop = Property.model_validate(make_property("p", bedrooms=3))
        assert bedroom_score(preferences, prop, penalty_per_room=10) == 90


class TestAmenityScore:
    """Proporción de amenities deseados presentes."""

    def test_all_desired_present(self, preferences, prop):
        assert amenity_score(preferences, prop) == 100

    def test_partial_overlap(self):
        prefs = UserPreferences(preferred_amenities=["gym", "pool", "doorman", "rooftop"])
        prop = Property.model_validate(make_property("p", amenities=["gym", "pool"]))
        assert amenity_score(prefs, prop) == 50

    def test_comparison_ignores_case_and_spacing(self):
        prefs = UserPreferences(preferred_amenities=["  Gym ", "Laundry"])
        prop = Property.model_validate(make_property("p", amenities=["gym", "laundry"]))
        assert amenity_score(prefs, prop) == 100

    @pytest.mark.parametrize("amenities", [[], ["gym"], None])
    def test_empty_desired_set_is_full_score(self, amenities):
        prefs = UserPreferences(preferred_amenities=[])
        prop = Property.model_validate(make_property("p", amenities=amenities))
        assert amenity_score(prefs, prop) == 100

    def test_property_without_amenities(self, preferences):
        prop = Property.model_validate(make_property("p", amenities=None))
        assert amenity_score(preferences, prop) == 0


class TestLocationScore:
    """Ubicación por nombre y por distancia."""

    def test_city_match(self, preferences, prop):
        assert location_score(preferences, prop) == 100

    def test_neighborhood_match(self):
        prefs = UserPreferences(preferred_locations=["South Congress"])
        prop = Property.model_validate(
            make_property("p", city="Austin", neighborhood="south congress")
        )
        assert location_score(prefs, prop) == 100

    def test_mismatch_gets_fixed_lower_score(self, preferences):
        prop = Property.model_validate(make_property("p", city="Dallas"))
        assert location_score(preferences, prop) == 40
        assert location_score(preferences, prop, mismatch_score=20) == 20

    def test_no_location_preference_is_full_score(self, prop):
        assert location_score(UserPreferences(), prop) == 100

    def test_reference_point_at_same_spot(self):
        prefs = UserPreferences(location_lat=30.2672, location_lng=-97.7431, search_radius=10)
        prop = Property.model_validate(make_property("p", city="Elsewhere"))
        assert location_score(prefs, prop) == 100

    def test_reference_point_decays_with_distance(self):
        prefs = UserPreferences(location_lat=30.2672, location_lng=-97.7431, search_radius=10)
        near = Property.model_validate(
            make_property("near", city="X", latitude=30.2900, longitude=-97.7431)
        )
        far = Property.model_validate(
            make_property("far", city="X", latitude=30.3800, longitude=-97.7431)
        )
        outside = Property.model_validate(
            make_property("out", city="X", latitude=31.5000, longitude=-97.7431)
        )
        near_score = location_score(prefs, near)
        far_score = location_score(prefs, far)
        assert 100 > near_score > far_score > 40
        assert location_score(prefs, outside) == 40

    def test_reference_point_without_property_coordinates(self):
        prefs = UserPreferences(location_lat=30.2672, location_lng=-97.7431)
        prop = Property.model_validate(
            make_property("p", city="X", latitude=None, longitude=None)
        )
        assert location_score(prefs, prop) == 40

    def test_location_name_from_profile_is_matched(self, prop):
        prefs = UserPreferences(location_name="  austin ")
        assert location_score(prefs, prop) == 100

    def test_location_name_mismatch(self, prop):
        prefs = UserPreferences.model_validate(
            make_preferences(preferred_locations=None, location_name="Denver")
        )
        assert location_score(prefs, prop) == 40

    def test_zero_radius_disables_distance(self):
        prefs = UserPreferences(location_lat=30.2672, location_lng=-97.7431, search_radius=0)
        prop = Property.model_validate(make_property("p", city="Elsewhere"))
        assert location_score(prefs, prop) == 40

    def test_haversine_known_distance(self):
        # Austin -> Dallas, ~182 millas
        distance = haversine_miles(30.2672, -97.7431, 32.7767, -96.7970)
        assert 175 < distance < 190


class TestFeatureScore:
    """Pet-friendly, amoblado y cochera."""

    def test_all_features_present(self, preferences, prop):
        assert feature_score(preferences, prop) == 100

    def test_nothing_required_is_full_score(self):
        prop = Property.model_validate(
            make_property("p", pet_friendly=False, furnished=False, parking_included=False)
        )
        assert feature_score(UserPreferences(), prop) == 100

    def test_each_feature_is_an_equal_share(self, preferences):
        one_missing = Property.model_validate(make_property("p", parking_included=False))
        two_missing = Property.model_validate(
            make_property("p", parking_included=False, furnished=False)
        )
        none_present = Property.model_validate(
            make_property("p", parking_included=False, furnished=False, pet_friendly=False)
        )
        assert feature_score(preferences, one_missing) == 67
        assert feature_score(preferences, two_missing) == 33
        assert feature_score(preferences, none_present) == 0


class TestAllCalculators:
    """Propiedades comunes a todos los factores."""

    @pytest.fixture
    def combinations(self):
        prefs = [
            UserPreferences(),
            UserPreferences.model_validate(make_preferences()),
            UserPreferences(
                budget_min=0,
                budget_max=0,
                preferred_bedrooms=[0],
                preferred_amenities=["sauna"],
                preferred_locations=["Nowhere"],
                location_lat=0.0,
                location_lng=0.0,
                search_radius=1,
                pet_friendly=True,
                furnished_preferred=True,
                parking_required=True,
            ),
        ]
        props = [
            Property.model_validate(make_property("a")),
            Property.model_validate(
                make_property(
                    "b", price=0, bedrooms=0, amenities=[], latitude=None, longitude=None
                )
            ),
            Property.model_validate(
                make_property("c", price=99999, bedrooms=12, city="", neighborhood="Nowhere")
            ),
        ]
        return [(p, x) for p in prefs for x in props]

    def test_scores_stay_in_range(self, combinations):
        for prefs, prop in combinations:
            for name, calculator in FACTOR_CALCULATORS.items():
                value = calculator(prefs, prop)
                assert isinstance(value, int), name
                assert 0 <= value <= 100, name

    def test_breakdown_is_deterministic(self, combinations):
        for prefs, prop in combinations:
            assert compute_breakdown(prefs, prop) == compute_breakdown(prefs, prop)

    def test_breakdown_has_every_factor(self, preferences, prop):
        assert set(compute_breakdown(preferences, prop)) == set(FACTOR_CALCULATORS)
