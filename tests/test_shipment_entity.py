"""Unit tests for the Shipment aggregate: creation, mutations, history."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from src.domain.entities import Checkpoint, Customer, Location, Shipment
from src.domain.enums import ShipmentStatus
from src.domain.exceptions import CheckpointNotFound
from src.domain.tracking import generate_tracking_number

TRACKING_RE = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")


def make_shipment(checkpoints=()):
    return Shipment.create(
        tracking_number=generate_tracking_number(),
        origin=Location((0.0, 0.0), "A"),
        destination=Location((0.0, 1.0), "B"),
        customer=Customer("X", "x@y.com"),
        checkpoints=checkpoints,
    )


def descriptions(shipment):
    return [event.description for event in shipment.history]


class TestTrackingNumber:
    def test_format(self):
        for _ in range(50):
            number = generate_tracking_number()
            assert TRACKING_RE.match(number)
            assert len(number.replace("-", "")) == 12

    def test_numbers_differ(self):
        assert len({generate_tracking_number() for _ in range(100)}) == 100


class TestCreate:
    def test_initial_state(self):
        shipment = make_shipment()
        assert shipment.status == ShipmentStatus.PENDING
        assert TRACKING_RE.match(shipment.tracking_number)
        assert descriptions(shipment) == ["Shipment created"]
        assert shipment.history[0].status == ShipmentStatus.PENDING
        assert shipment.current_location == shipment.origin

    def test_default_estimated_delivery_is_three_days(self):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        shipment = Shipment.create(
            tracking_number="AAAA-BBBB-CCCC",
            origin=Location((0.0, 0.0), "A"),
            destination=Location((0.0, 1.0), "B"),
            customer=Customer("X", "x@y.com"),
            now=now,
        )
        assert shipment.estimated_delivery == now + timedelta(days=3)

    def test_explicit_estimated_delivery_is_kept(self):
        when = datetime(2030, 1, 1, tzinfo=timezone.utc)
        shipment = Shipment.create(
            tracking_number="AAAA-BBBB-CCCC",
            origin=Location((0.0, 0.0), "A"),
            destination=Location((0.0, 1.0), "B"),
            customer=Customer("X", "x@y.com"),
            estimated_delivery=when,
        )
        assert shipment.estimated_delivery == when

    def test_checkpoints_are_normalised_unreached(self):
        cp = Checkpoint(location=Location((0.0, 0.5), "M"), name="Mid", reached=True, notes=None)
        shipment = make_shipment(checkpoints=[cp])
        assert shipment.checkpoints[0].reached is False
        assert shipment.checkpoints[0].notes == ""
        assert shipment.checkpoints[0].name == "Mid"


class TestLocationUpdates:
    def test_tracked_update_marks_nearby_checkpoint(self):
        shipment = make_shipment(
            checkpoints=[Checkpoint(location=Location((0.0, 0.5), "M"), name="Mid")]
        )
        reached = shipment.update_location(
            (0.0, 0.5001), "Near Mid", status=ShipmentStatus.IN_TRANSIT
        )
        assert [cp.name for cp in reached] == ["Mid"]
        assert shipment.checkpoints[0].reached is True
        assert descriptions(shipment) == [
            "Shipment created",
            "Location updated",
            "Reached checkpoint: Mid",
        ]
        assert shipment.history[-1].status == ShipmentStatus.IN_TRANSIT
        assert shipment.status == ShipmentStatus.IN_TRANSIT

    def test_tracked_update_outside_radius(self):
        shipment = make_shipment(
            checkpoints=[Checkpoint(location=Location((0.0, 0.5), "M"), name="Mid")]
        )
        # ~0.56 km away
        assert shipment.update_location((0.0, 0.505), "Close") == []
        assert shipment.checkpoints[0].reached is False

    def test_several_checkpoints_in_one_update(self):
        shipment = make_shipment(
            checkpoints=[
                Checkpoint(location=Location((0.0, 0.5), "M1"), name="First"),
                Checkpoint(location=Location((0.0, 0.501), "M2"), name="Second"),
                Checkpoint(location=Location((0.0, 0.9), "M3"), name="Far"),
            ]
        )
        shipment.update_location((0.0, 0.5005), "Between")
        assert [cp.reached for cp in shipment.checkpoints] == [True, True, False]
        assert descriptions(shipment)[-2:] == [
            "Reached checkpoint: First",
            "Reached checkpoint: Second",
        ]

    def test_reached_checkpoint_is_not_recorded_twice(self):
        shipment = make_shipment(
            checkpoints=[Checkpoint(location=Location((0.0, 0.5), "M"), name="Mid")]
        )
        shipment.update_location((0.0, 0.5), "Mid")
        shipment.update_location((0.0, 0.5), "Mid")
        assert descriptions(shipment).count("Reached checkpoint: Mid") == 1

    def test_manual_update_skips_checkpoint_detection(self):
        shipment = make_shipment(
            checkpoints=[Checkpoint(location=Location((0.0, 0.5), "M"), name="Mid")]
        )
        shipment.update_location_manually((0.0, 0.5001), "Near Mid")
        assert shipment.checkpoints[0].reached is False
        assert descriptions(shipment) == ["Shipment created", "Location updated manually"]
        assert shipment.current_location.coordinates == (0.0, 0.5001)

    def test_repeated_manual_updates_are_not_deduplicated(self):
        shipment = make_shipment()
        shipment.update_location_manually((0.0, 0.2), "P")
        shipment.update_location_manually((0.0, 0.2), "P")
        assert descriptions(shipment) == [
            "Shipment created",
            "Location updated manually",
            "Location updated manually",
        ]

    def test_custom_description(self):
        shipment = make_shipment()
        shipment.update_location((0.0, 0.2), "P", description="Left depot")
        assert shipment.history[-1].description == "Left depot"
        assert shipment.history[-1].location.address == "P"


class TestStatus:
    @pytest.mark.parametrize(
        "first, second",
        [
            (ShipmentStatus.DELIVERED, ShipmentStatus.PENDING),
            (ShipmentStatus.EXCEPTION, ShipmentStatus.IN_TRANSIT),
            (ShipmentStatus.PENDING, ShipmentStatus.PENDING),
        ],
    )
    def test_any_transition_is_allowed(self, first, second):
        shipment = make_shipment()
        shipment.update_status(first)
        shipment.update_status(second)
        assert shipment.status == second

    def test_status_update_records_history(self):
        shipment = make_shipment()
        shipment.update_status(ShipmentStatus.OUT_FOR_DELIVERY)
        event = shipment.history[-1]
        assert event.description == "Status updated to out_for_delivery"
        assert event.status == ShipmentStatus.OUT_FOR_DELIVERY
        assert event.location == shipment.current_location


class TestHistoryOrdering:
    def test_timestamps_never_go_backwards(self):
        shipment = make_shipment()
        later = shipment.history[-1].timestamp + timedelta(hours=1)
        shipment.update_status(ShipmentStatus.IN_TRANSIT, now=later)
        shipment.update_status(ShipmentStatus.EXCEPTION, now=later - timedelta(hours=5))
        stamps = [event.timestamp for event in shipment.history]
        assert stamps == sorted(stamps)


class TestCheckpoints:
    def test_add_appends_in_order(self):
        shipment = make_shipment()
        shipment.add_checkpoint(Checkpoint(location=Location((0.0, 0.3), "a"), name="One"))
        shipment.add_checkpoint(
            Checkpoint(location=Location((0.0, 0.6), "b"), name="Two", reached=True)
        )
        assert [cp.name for cp in shipment.checkpoints] == ["One", "Two"]
        assert shipment.checkpoints[1].reached is False

    def test_update_reached_records_history(self):
        shipment = make_shipment()
        cp = shipment.add_checkpoint(Checkpoint(location=Location((0.0, 0.3), "a"), name="One"))
        shipment.update_checkpoint(cp.id, reached=True, name="Renamed")
        assert cp.reached is True
        assert descriptions(shipment)[-1] == "Checkpoint reached: Renamed"

    def test_update_already_reached_adds_no_history(self):
        shipment = make_shipment()
        cp = shipment.add_checkpoint(Checkpoint(location=Location((0.0, 0.3), "a"), name="One"))
        shipment.update_checkpoint(cp.id, reached=True)
        before = len(shipment.history)
        shipment.update_checkpoint(cp.id, reached=True, notes="again")
        assert len(shipment.history) == before
        assert cp.notes == "again"

    def test_update_other_fields(self):
        shipment = make_shipment()
        when = datetime(2026, 5, 1, tzinfo=timezone.utc)
        cp = shipment.add_checkpoint(
            Checkpoint(location=Location((0.0, 0.3), "a"), name="One", estimated_arrival=when)
        )
        new_location = Location((0.0, 0.4), "moved")
        shipment.update_checkpoint(cp.id, location=new_location, estimated_arrival=None)
        assert cp.location == new_location
        assert cp.estimated_arrival is None
        assert descriptions(shipment) == ["Shipment created"]

    def test_update_unknown_field_rejected(self):
        shipment = make_shipment()
        cp = shipment.add_checkpoint(Checkpoint(location=Location((0.0, 0.3), "a"), name="One"))
        with pytest.raises(TypeError):
            shipment.update_checkpoint(cp.id, colour="red")

    def test_remove(self):
        shipment = make_shipment()
        cp = shipment.add_checkpoint(Checkpoint(location=Location((0.0, 0.3), "a"), name="One"))
        shipment.remove_checkpoint(cp.id)
        assert shipment.checkpoints == []

    def test_unknown_checkpoint(self):
        shipment = make_shipment()
        with pytest.raises(CheckpointNotFound):
            shipment.remove_checkpoint("does-not-exist")
        with pytest.raises(CheckpointNotFound):
            shipment.update_checkpoint("does-not-exist", reached=True)
