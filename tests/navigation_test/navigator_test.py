import asyncio

import pytest

from navigation.guidance.errors import DirectionsError, InvalidDestinationError
from navigation.guidance.models import AlertLevel, LocationSample
from navigation.guidance.navigator import NavigationSession
from navigation.guidance.reroute import RerouteState

from route_fixtures import ControlledDirections, ORIGIN, multi_leg_route, offset, settle


def at(north_m: float, east_m: float = 0.0) -> LocationSample:
    return LocationSample(coord=offset(ORIGIN, north_m, east_m))


@pytest.fixture
def service():
    return ControlledDirections()


@pytest.fixture
def session(service):
    return NavigationSession(service=service)


def test_load_route_consolidates(session):
    progress = session.load_route(multi_leg_route([1000.0, 500.0, 800.0]))

    assert len(progress.route.legs) == 1
    assert progress.route.distance == pytest.approx(2300.0)
    assert progress.current_leg.main_maneuver_locations[0] == ORIGIN
    assert session.is_active


@pytest.mark.asyncio
async def test_off_route_sample_triggers_one_reroute(session, service):
    session.load_route(multi_leg_route([1000.0, 500.0, 800.0]))
    applied = []
    session.events.reroute_applied.subscribe(applied.append)

    session.update(at(100.0, 150.0))
    await settle()
    assert len(service.calls) == 1
    assert session.reroute_state == RerouteState.REQUESTING

    # 10 m further on, still off the route: below the hysteresis distance
    session.update(at(110.0, 150.0))
    await settle()
    assert len(service.calls) == 1

    _, future = service.calls[0]
    future.set_result([multi_leg_route([700.0], start=offset(ORIGIN, 110.0, 150.0))])
    await settle()

    assert session.reroute_state == RerouteState.IDLE
    assert applied == [session.progress]
    assert session.progress.route.distance == pytest.approx(700.0)
    assert session.progress.step_index == 0


@pytest.mark.asyncio
async def test_sample_processing_continues_while_request_is_pending(session, service):
    session.load_route(multi_leg_route([1000.0]))
    session.update(at(100.0, 150.0))
    await settle()

    progress = session.update(at(120.0))

    assert progress.alert_level == AlertLevel.LOW
    assert session.reroute_state == RerouteState.REQUESTING
    session.stop_navigation()
    await settle()
    assert session.reroute_state == RerouteState.IDLE


@pytest.mark.asyncio
async def test_start_navigation(session, service):
    destination = offset(ORIGIN, 1500.0)

    async def answer():
        await settle()
        service.calls[0][1].set_result([multi_leg_route([1000.0, 500.0])])

    helper = asyncio.ensure_future(answer())
    progress = await session.start_navigation([ORIGIN, offset(ORIGIN, 1000.0), destination])
    await helper

    assert [w.coord for w in service.calls[0][0]] == [ORIGIN, offset(ORIGIN, 1000.0), destination]
    assert len(progress.current_leg.main_maneuver_locations) == 3


@pytest.mark.asyncio
async def test_start_navigation_without_route_raises(session, service):
    async def answer():
        await settle()
        service.calls[0][1].set_result([])

    helper = asyncio.ensure_future(answer())
    with pytest.raises(DirectionsError):
        await session.start_navigation([ORIGIN, offset(ORIGIN, 1000.0)])
    await helper
    assert session.progress is None


@pytest.mark.asyncio
async def test_start_navigation_needs_two_coordinates(session, service):
    with pytest.raises(InvalidDestinationError):
        await session.start_navigation([ORIGIN])

    assert service.calls == []
    assert session.progress is None


def test_new_destination_needs_two_coordinates(session):
    session.load_route(multi_leg_route([1000.0]))

    with pytest.raises(InvalidDestinationError):
        session.new_destination([ORIGIN])


def test_drive_to_destination(session):
    arrived = []
    session.events.arrived.subscribe(arrived.append)
    session.load_route(multi_leg_route([400.0, 400.0], turns=1))

    for n in range(0, 801, 20):
        progress = session.update(at(float(n)))

    assert progress.arrived
    assert len(arrived) == 1
    assert not session.is_active


def test_off_route_without_event_loop_keeps_tracking(session, service):
    session.load_route(multi_leg_route([1000.0]))

    session.update(at(100.0, 150.0))
    progress = session.update(at(120.0))

    assert session.reroute_state == RerouteState.IDLE
    assert session.coordinator.last_reroute_location is None
    assert service.calls == []
    assert progress.alert_level == AlertLevel.LOW
