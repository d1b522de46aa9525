import pytest

from kmrl_induction.models.trainset import (
    BrandingPriority,
    Decision,
    SnapshotValidationError,
    parse_snapshot,
)
from tests.conftest import make_document


def test_valid_document_parses():
    snapshot = parse_snapshot(make_document(depotId="DEPOT-1"))

    assert snapshot.id == "TS-01"
    assert snapshot.recommendation == Decision.REVENUE
    assert snapshot.branding_priority == BrandingPriority.HIGH
    assert snapshot.depot_id == "DEPOT-1"
    assert snapshot.manual_override is False


def test_attribute_names_are_accepted():
    doc = make_document()
    doc["mileage_km"] = doc.pop("mileageKm")
    assert parse_snapshot(doc).mileage_km == 12450


def test_unknown_fitness_status_rejected():
    with pytest.raises(SnapshotValidationError) as exc:
        parse_snapshot(make_document(telecom="EXPIRED"))

    assert exc.value.trainset_id == "TS-01"
    assert exc.value.fields == ["fitness.telecom.status"]


@pytest.mark.parametrize(
    "field, value",
    [
        ("recommendation", "MAINTENANCE"),
        ("brandingPriority", "ULTRA"),
        ("cleaningStatus", "DIRTY"),
        ("mileageKm", -1),
    ],
)
def test_bad_enum_or_range_rejected(field, value):
    with pytest.raises(SnapshotValidationError) as exc:
        parse_snapshot(make_document(**{field: value}))
    assert exc.value.fields == [field]


def test_missing_field_rejected():
    doc = make_document()
    del doc["fitness"]
    with pytest.raises(SnapshotValidationError) as exc:
        parse_snapshot(doc)
    assert "fitness" in exc.value.fields


def test_missing_reason_rejected():
    doc = make_document()
    del doc["reason"]
    with pytest.raises(SnapshotValidationError) as exc:
        parse_snapshot(doc)
    assert exc.value.fields == ["reason"]


def test_missing_fitness_details_rejected():
    doc = make_document()
    del doc["fitness"]["telecom"]["details"]
    with pytest.raises(SnapshotValidationError) as exc:
        parse_snapshot(doc)
    assert exc.value.fields == ["fitness.telecom.details"]


@pytest.mark.parametrize(
    "field, value",
    [
        ("mileageKm", "12450"),
        ("mileageKm", 12450.0),
        ("jobCardOpen", "yes"),
        ("jobCardOpen", 1),
        ("manualOverride", "false"),
    ],
)
def test_loosely_typed_values_not_coerced(field, value):
    with pytest.raises(SnapshotValidationError) as exc:
        parse_snapshot(make_document(**{field: value}))
    assert exc.value.fields == [field]


def test_manual_override_defaults_to_false():
    doc = make_document()
    del doc["manualOverride"]
    assert parse_snapshot(doc).manual_override is False


def test_empty_id_rejected():
    with pytest.raises(SnapshotValidationError):
        parse_snapshot(make_document(id=""))


def test_snapshot_is_immutable():
    snapshot = parse_snapshot(make_document())
    with pytest.raises(Exception):
        snapshot.recommendation = Decision.IBL
