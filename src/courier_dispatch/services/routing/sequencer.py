"""Greedy nearest-neighbour sequencing of multi-stop delivery routes.

Stops are ranked once by their distance from the store. Each leg after the
first is then measured again from the previous stop, so the distances shown
for legs 2..N are real stop-to-stop figures. All lookups run one at a time.
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Sequence

from ...models.domain import Destination, ReturnOption, Store
from .distance_client import DistanceLookupError, DistanceOracle
from .models import LegKind, LegMeasurement, RouteLeg, RoutePlan
from .units import UNRESOLVED_DISTANCE_METERS

logger = logging.getLogger(__name__)


class RoutePlanningError(ValueError):
    """Planning was aborted because a leg could not be measured."""


def _measure(oracle: DistanceOracle, origin: str, destination: str) -> LegMeasurement:
    try:
        return oracle.get_leg(origin, destination)
    except (DistanceLookupError, ValueError) as exc:
        raise RoutePlanningError(str(exc)) from exc


def _measure_from_store(
    oracle: DistanceOracle, store: Store, destinations: Sequence[Destination]
) -> list[LegMeasurement]:
    addresses = [destination.address for destination in destinations]
    batch = getattr(oracle, "get_legs", None)
    if batch is None:
        return [_measure(oracle, store.address, address) for address in addresses]
    try:
        return list(batch(store.address, addresses))
    except (DistanceLookupError, ValueError) as exc:
        raise RoutePlanningError(str(exc)) from exc


def rank_by_distance(
    destinations: Sequence[Destination], measurements: Sequence[LegMeasurement]
) -> list[tuple[Destination, LegMeasurement]]:
    """Order stops nearest first; equal distances keep their input order."""
    indexed = list(enumerate(zip(destinations, measurements)))
    indexed.sort(key=lambda item: (item[1][1].distance_value, item[0]))
    return [pair for _, pair in indexed]


def _leg(origin: str, destination: str, measurement: LegMeasurement, sequence_index: int, **extra) -> RouteLeg:
    return RouteLeg(
        origin=origin,
        destination=destination,
        distance_text=measurement.distance_text,
        distance_value=measurement.distance_value,
        duration_text=measurement.duration_text,
        duration_value=measurement.duration_value,
        sequence_index=sequence_index,
        **extra,
    )


def sequence_route(
    store: Store,
    destinations: Sequence[Destination],
    oracle: DistanceOracle,
    *,
    return_option: ReturnOption = ReturnOption.NONE,
    active_stores: Sequence[Store] = (),
) -> RoutePlan:
    """Build a route plan starting at ``store`` and visiting every destination once."""
    if not store.address or not store.address.strip():
        raise ValueError(f"Store '{store.name}' has no address.")
    if not destinations:
        raise ValueError("At least one destination is required.")
    for destination in destinations:
        if not destination.address or not destination.address.strip():
            raise ValueError(f"Customer '{destination.name}' has no selected address.")

    ranked = rank_by_distance(destinations, _measure_from_store(oracle, store, destinations))

    first_stop, first_measurement = ranked[0]
    first_leg = _leg(store.address, first_stop.address, first_measurement, 1, stop=first_stop)

    def append_leg(legs: list[RouteLeg], ranked_stop: tuple[Destination, LegMeasurement]) -> list[RouteLeg]:
        stop, _ = ranked_stop
        origin = legs[-1].destination
        measurement = _measure(oracle, origin, stop.address)
        return [*legs, _leg(origin, stop.address, measurement, len(legs) + 1, stop=stop)]

    legs = reduce(append_leg, ranked[1:], [first_leg])

    plan = RoutePlan(store=store, return_option=ReturnOption(return_option), legs=legs)
    return_leg = _build_return_leg(plan, oracle, active_stores)
    if return_leg is not None:
        plan.legs.append(return_leg)

    logger.info(
        f"Sequenced {len(plan.delivery_legs)} stops from store '{store.name}' "
        f"(return option: {plan.return_option.value})"
    )
    return plan


def _build_return_leg(plan: RoutePlan, oracle: DistanceOracle, active_stores: Sequence[Store]) -> RouteLeg | None:
    option = plan.return_option
    if option is ReturnOption.NONE:
        return None

    last_address = plan.legs[-1].destination
    sequence_index = len(plan.legs) + 1

    if option is ReturnOption.ORIGINAL:
        measurement = _measure(oracle, last_address, plan.store.address)
        return _leg(
            last_address, plan.store.address, measurement, sequence_index,
            kind=LegKind.RETURN, return_store=plan.store,
        )

    if option is ReturnOption.NEAREST:
        nearest = find_nearest_store(oracle, last_address, active_stores)
        if nearest is not None:
            store, measurement = nearest
            return _leg(
                last_address, store.address, measurement, sequence_index,
                kind=LegKind.RETURN, return_store=store,
            )
        logger.warning(
            f"No active store could be reached from '{last_address}', returning to '{plan.store.name}'"
        )
        measurement = _measure(oracle, last_address, plan.store.address)
        return _leg(
            last_address, plan.store.address, measurement, sequence_index,
            kind=LegKind.RETURN, return_store=plan.store, fallback=True,
        )

    raise ValueError(f"Unsupported return option: {option!r}")


def find_nearest_store(
    oracle: DistanceOracle, origin: str, stores: Sequence[Store]
) -> tuple[Store, LegMeasurement] | None:
    """Probe every active store from ``origin`` and return the closest one.

    Stores that fail to resolve are kept with a sentinel distance instead of
    aborting the search; when the sentinel wins, no store was reachable and
    None is returned. This issues one request per store.
    """
    candidates: list[tuple[int, int, Store, LegMeasurement | None]] = []
    for position, store in enumerate(stores):
        if not store.is_active or not store.address:
            continue
        try:
            measurement = oracle.get_leg(origin, store.address)
            candidates.append((measurement.distance_value, position, store, measurement))
        except (DistanceLookupError, ValueError) as exc:
            logger.warning(f"Could not measure distance to store '{store.name}': {exc}")
            candidates.append((UNRESOLVED_DISTANCE_METERS, position, store, None))

    if not candidates:
        return None
    _, _, store, measurement = min(
        candidates, key=lambda candidate: (candidate[0], candidate[3] is None, candidate[1])
    )
    if measurement is None:
        return None
    return store, measurement


def rechain_legs(plan: RoutePlan) -> RoutePlan:
    """Recompute every origin and sequence index from the current leg order."""
    previous = plan.store.address
    for index, leg in enumerate(plan.legs, start=1):
        leg.origin = previous
        leg.sequence_index = index
        previous = leg.destination
    return plan


def _swap_delivery_legs(plan: RoutePlan, first: int, second: int) -> RoutePlan:
    count = len(plan.delivery_legs)
    if not (0 <= first < count and 0 <= second < count):
        raise ValueError(f"Only delivery stops 1..{count} can be reordered.")
    plan.legs[first], plan.legs[second] = plan.legs[second], plan.legs[first]
    return rechain_legs(plan)


def move_leg_up(plan: RoutePlan, index: int) -> RoutePlan:
    """Swap the delivery leg at zero-based ``index`` with the one before it."""
    return _swap_delivery_legs(plan, index - 1, index)


def move_leg_down(plan: RoutePlan, index: int) -> RoutePlan:
    """Swap the delivery leg at zero-based ``index`` with the one after it."""
    return _swap_delivery_legs(plan, index, index + 1)
