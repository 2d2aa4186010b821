from types import SimpleNamespace
from unittest.mock import MagicMock

from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from care.incidents import IncidentReport, Location, StaticHospitalDirectory
from care.medicine import StaticMedicineRegistry, VerificationRequest, VerificationStatus, verify_medicine
from database.mongo_client import MongoDBClient, MongoMedicineRegistry


def connected_client():
    mongo = MagicMock()
    return MongoDBClient(client=mongo), mongo


def test_disconnected_without_uri(monkeypatch):
    monkeypatch.setattr("config.MONGODB_URI", "")
    db = MongoDBClient()
    assert db.connected is False
    report = IncidentReport.from_form("stroke")
    assert db.save_incident(report, StaticHospitalDirectory().match(report)) is None
    assert db.trusted_medicines() == []


def test_failed_ping_leaves_client_disconnected():
    mongo = MagicMock()
    mongo.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
    db = MongoDBClient(client=mongo)
    assert db.connected is False


def test_save_incident_document():
    db, _ = connected_client()
    db.incidents.insert_one.return_value = SimpleNamespace(inserted_id="abc123")
    report = IncidentReport.from_form(
        "accident", "medium", "bike crash", location=Location(28.6, 77.2, "Ring Road")
    )

    report_id = db.save_incident(report, StaticHospitalDirectory().match(report))

    assert report_id == "abc123"
    doc = db.incidents.insert_one.call_args.args[0]
    assert doc["incident_type"] == "accident"
    assert doc["priority"] == "medium"
    assert doc["location"]["address"] == "Ring Road"
    assert doc["matched_hospitals"] == ["Apollo Emergency Center", "Max Hospital Emergency"]


def test_save_incident_failure_returns_none():
    db, _ = connected_client()
    db.incidents.insert_one.side_effect = PyMongoError("write failed")
    report = IncidentReport.from_form("other")
    assert db.save_incident(report, StaticHospitalDirectory().match(report)) is None


def test_mongo_registry_verifies_against_stored_medicines():
    db, _ = connected_client()
    db.medicines.find.return_value = [
        {"name": "Pantoprazole 40mg", "manufacturer": "Alkem", "batch_pattern": "^PAN", "description": "Acidity"},
        {"name": "incomplete"},
    ]
    registry = MongoMedicineRegistry(db)

    result = verify_medicine(VerificationRequest("pantoprazole", "alkem", "PAN77"), registry)

    assert result.status is VerificationStatus.SAFE
    assert len(registry.all()) == 1


def test_seed_only_fills_empty_collection():
    db, _ = connected_client()
    db.medicines.count_documents.return_value = 0
    db.medicines.insert_many.return_value = SimpleNamespace(inserted_ids=[1, 2, 3, 4])

    assert db.seed_trusted_medicines() == len(StaticMedicineRegistry().all())

    db.medicines.count_documents.return_value = 4
    assert db.seed_trusted_medicines() == 0


def test_stored_medicine_with_bad_pattern_is_skipped():
    db, _ = connected_client()
    db.medicines.find.return_value = [
        {"name": "Broken 10mg", "manufacturer": "Acme", "batch_pattern": "^(BRK"},
        {"name": "Pantoprazole 40mg", "manufacturer": "Alkem", "batch_pattern": "^PAN"},
    ]
    registry = MongoMedicineRegistry(db)

    assert [m.name for m in registry.all()] == ["Pantoprazole 40mg"]
    result = verify_medicine(VerificationRequest("broken", "acme", "BRK1"), registry)
    assert result.status is VerificationStatus.WARNING
