import copy

import pytest

from kmrl_induction.models.trainset import TrainsetSnapshot
from kmrl_induction.services.induction_service import InductionService
from kmrl_induction.utils.database import InMemoryTrainsetRepository, load_demo_fleet

BASE_DOCUMENT = {
    "id": "TS-01",
    "recommendation": "REVENUE",
    "reason": "All systems operational.",
    "mileageKm": 12450,
    "brandingPriority": "HIGH",
    "jobCardOpen": False,
    "cleaningStatus": "COMPLETED",
    "fitness": {
        "rollingStock": {"status": "PASS", "details": "ok"},
        "signalling": {"status": "PASS", "details": "ok"},
        "telecom": {"status": "PASS", "details": "ok"},
    },
    "manualOverride": False,
}


def make_document(rolling_stock="PASS", signalling="PASS", telecom="PASS", **fields):
    """Trainset document in wire shape; keyword fields use the camelCase names."""
    doc = copy.deepcopy(BASE_DOCUMENT)
    doc["fitness"]["rollingStock"]["status"] = rolling_stock
    doc["fitness"]["signalling"]["status"] = signalling
    doc["fitness"]["telecom"]["status"] = telecom
    doc.update(fields)
    return doc


def make_snapshot(rolling_stock="PASS", signalling="PASS", telecom="PASS", **fields) -> TrainsetSnapshot:
    return TrainsetSnapshot.model_validate(make_document(rolling_stock, signalling, telecom, **fields))


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def document_factory():
    return make_document


@pytest.fixture
def demo_documents():
    return load_demo_fleet()


@pytest.fixture
def repository(demo_documents):
    return InMemoryTrainsetRepository(demo_documents)


@pytest.fixture
def service(repository):
    return InductionService(repository)
