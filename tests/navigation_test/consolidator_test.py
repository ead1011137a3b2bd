import pytest

from navigation.guidance.consolidator import consolidate
from navigation.guidance.errors import RouteStructureError
from navigation.guidance.models import ManeuverType, Route, RouteLeg, RouteStep

from route_fixtures import ORIGIN, multi_leg_route, offset, straight_leg


@pytest.fixture
def three_legs():
    return multi_leg_route([1000.0, 500.0, 800.0])


def test_three_leg_route_merges_into_one_leg(three_legs):
    route = consolidate(three_legs, ORIGIN)

    assert len(route.legs) == 1
    leg = route.legs[0]
    assert leg.distance == pytest.approx(2300.0)
    assert leg.expected_travel_time == pytest.approx(three_legs.expected_travel_time)
    assert len(leg.main_maneuver_locations) == 4


@pytest.mark.parametrize("distances", [[300.0], [100.0, 200.0], [50.0, 60.0, 70.0, 80.0, 90.0]])
def test_totals_and_anchor_count_are_conserved(distances):
    original = multi_leg_route(distances)
    route = consolidate(original, ORIGIN)

    assert route.distance == pytest.approx(sum(distances))
    assert route.expected_travel_time == pytest.approx(original.expected_travel_time)
    # A single leg passes through with only its destination anchor
    expected = len(distances) + 1 if len(distances) >= 2 else 1
    assert len(route.legs[0].main_maneuver_locations) == expected


def test_anchors_mark_each_original_leg(three_legs):
    user_position = offset(ORIGIN, east_m=5.0)
    first, middle, last = three_legs.legs

    anchors = consolidate(three_legs, user_position).legs[0].main_maneuver_locations

    assert anchors[0] == user_position
    assert anchors[1] == first.steps[0].maneuver_location
    # interior legs anchor on their first step after depart is dropped
    assert anchors[2] == middle.steps[1].maneuver_location
    assert anchors[3] == last.steps[-1].maneuver_location


def test_internal_depart_and_arrive_steps_are_removed(three_legs):
    steps = consolidate(three_legs, ORIGIN).legs[0].steps
    kinds = [s.maneuver_type for s in steps]

    assert kinds[0] == ManeuverType.DEPART
    assert kinds[-1] == ManeuverType.ARRIVE
    assert ManeuverType.DEPART not in kinds[1:]
    assert ManeuverType.ARRIVE not in kinds[:-1]
    # 3 steps per leg, minus arrive / depart / both / depart
    assert len(steps) == 9 - 1 - 2 - 1


def test_waypoints_reduced_to_first_and_last(three_legs):
    route = consolidate(three_legs, ORIGIN)

    assert route.waypoints == (three_legs.waypoints[0], three_legs.waypoints[-1])
    assert route.legs[0].destination == three_legs.legs[-1].destination


def test_single_leg_is_passed_through():
    original = multi_leg_route([400.0], turns=2)
    route = consolidate(original, offset(ORIGIN, east_m=30.0))

    leg = route.legs[0]
    assert leg.steps == original.legs[0].steps
    assert leg.distance == original.legs[0].distance
    assert route.waypoints == original.waypoints
    assert leg.main_maneuver_locations == (original.legs[0].steps[-1].maneuver_location,)


def test_original_route_is_left_untouched(three_legs):
    consolidate(three_legs, ORIGIN)

    assert len(three_legs.legs) == 3
    assert all(leg.main_maneuver_locations == () for leg in three_legs.legs)


def test_route_without_legs_fails():
    with pytest.raises(RouteStructureError):
        consolidate(Route(legs=()), ORIGIN)


def test_leg_without_steps_fails():
    good = straight_leg(ORIGIN, 100.0)
    empty = RouteLeg(steps=(), distance=0.0, expected_travel_time=0.0)

    with pytest.raises(RouteStructureError):
        consolidate(Route(legs=(good, empty)), ORIGIN)


def test_interior_leg_with_only_boundary_steps_fails():
    here = offset(ORIGIN, 100.0)
    boundary_only = RouteLeg(
        steps=(
            RouteStep(ManeuverType.DEPART, here, 0.0, 0.0),
            RouteStep(ManeuverType.ARRIVE, here, 0.0, 0.0),
        ),
        distance=0.0,
        expected_travel_time=0.0,
    )
    route = Route(legs=(straight_leg(ORIGIN, 100.0), boundary_only, straight_leg(here, 100.0)))

    with pytest.raises(RouteStructureError):
        consolidate(route, ORIGIN)


@pytest.mark.parametrize("position", ["first", "last"])
def test_outer_leg_with_only_dropped_steps_fails(position):
    here = offset(ORIGIN, 100.0)
    dropped = ManeuverType.ARRIVE if position == "first" else ManeuverType.DEPART
    hollow = RouteLeg(
        steps=(RouteStep(dropped, here, 0.0, 0.0),),
        distance=0.0,
        expected_travel_time=0.0,
    )
    legs = (hollow, straight_leg(here, 100.0)) if position == "first" else (straight_leg(ORIGIN, 100.0), hollow)

    with pytest.raises(RouteStructureError):
        consolidate(Route(legs=legs), ORIGIN)
