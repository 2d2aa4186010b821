"""
MongoDB Client for incident reports and the trusted-medicine registry.

Handles all database operations:
  - Connection management with graceful fallback
  - Saving emergency incident reports
  - Reading trusted medicines for verification

Without ``MONGODB_URI`` the client stays disconnected and the app falls
back to the built-in tables.
"""

import logging
import re
from datetime import datetime, timezone

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from care.incidents import HospitalMatch, IncidentReport
from care.medicine import MedicineRegistry, TrustedMedicine, TRUSTED_MEDICINES
import config

logger = logging.getLogger(__name__)


class MongoDBClient:
    """Manages the MongoDB connection and the two collections we use."""

    def __init__(self, uri: str | None = None, client: MongoClient | None = None):
        self.uri = uri or config.MONGODB_URI
        self.db_name = config.MONGODB_DB_NAME
        self.client = client
        self.db = None
        self.incidents = None
        self.medicines = None
        self.connected = False

        if self.client is not None or self.uri:
            self._connect()

    def _connect(self):
        """Establish MongoDB connection."""
        try:
            if self.client is None:
                self.client = MongoClient(
                    self.uri,
                    serverSelectionTimeoutMS=5000,
                    connectTimeoutMS=5000,
                )
            # Test the connection
            self.client.admin.command("ping")
            self.db = self.client[self.db_name]
            self.incidents = self.db[config.MONGODB_INCIDENTS_COLLECTION]
            self.medicines = self.db[config.MONGODB_MEDICINES_COLLECTION]
            self.connected = True
            logger.info("[MongoDB] Connected to database: %s", self.db_name)
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error("[MongoDB] Connection failed: %s", e)
            self.connected = False

    def save_incident(self, report: IncidentReport, match: HospitalMatch) -> str | None:
        """
        Save an emergency incident report.

        Returns:
            Report ID string if successful, None if failed.
        """
        if not self.connected:
            logger.warning("[MongoDB] Not connected — cannot save incident report")
            return None

        location = report.location
        incident_doc = {
            "incident_type": report.incident_type.value,
            "priority": report.priority.value,
            "description": report.description,
            "has_photo": bool(report.photo_path),
            "has_voice_note": bool(report.audio_path),
            "location": (
                {
                    "latitude": location.latitude,
                    "longitude": location.longitude,
                    "address": location.address,
                }
                if location
                else None
            ),
            "reporter": report.reporter,
            "matched_hospitals": [h.name for h in match.hospitals],
            "suggested_areas": [a.name for a in match.suggested_areas],
            "status": "submitted",
            "reported_at": report.reported_at,
            "saved_at": datetime.now(timezone.utc),
        }

        try:
            result = self.incidents.insert_one(incident_doc)
        except PyMongoError as e:
            logger.error("[MongoDB] Failed to save incident report: %s", e)
            return None

        report_id = str(result.inserted_id)
        logger.info("[MongoDB] Incident report saved — ID: %s", report_id)
        return report_id

    def trusted_medicines(self) -> list[TrustedMedicine]:
        """All trusted medicines stored in the registry collection."""
        if not self.connected:
            return []
        try:
            docs = list(self.medicines.find({}, {"_id": 0}))
        except PyMongoError as e:
            logger.error("[MongoDB] Failed to read trusted medicines: %s", e)
            return []
        medicines = []
        for doc in docs:
            if not doc.get("name") or not doc.get("manufacturer"):
                continue
            pattern = doc.get("batch_pattern", ".*")
            try:
                re.compile(pattern)
            except (re.error, TypeError) as e:
                logger.warning("[MongoDB] Skipping '%s': bad batch pattern %r (%s)", doc["name"], pattern, e)
                continue
            medicines.append(
                TrustedMedicine(
                    name=doc["name"],
                    manufacturer=doc["manufacturer"],
                    batch_pattern=pattern,
                    description=doc.get("description", ""),
                )
            )
        return medicines

    def seed_trusted_medicines(self) -> int:
        """Load the built-in table into an empty registry collection."""
        if not self.connected:
            return 0
        try:
            if self.medicines.count_documents({}) > 0:
                return 0
            result = self.medicines.insert_many(
                [
                    {
                        "name": m.name,
                        "manufacturer": m.manufacturer,
                        "batch_pattern": m.batch_pattern,
                        "description": m.description,
                    }
                    for m in TRUSTED_MEDICINES
                ]
            )
        except PyMongoError as e:
            logger.error("[MongoDB] Failed to seed trusted medicines: %s", e)
            return 0
        return len(result.inserted_ids)

    def close(self):
        """Close the MongoDB connection."""
        if self.client:
            self.client.close()
            self.connected = False
            logger.info("[MongoDB] Connection closed.")


class MongoMedicineRegistry(MedicineRegistry):
    """Trusted medicines read from MongoDB on every lookup."""

    def __init__(self, db_client: MongoDBClient):
        self.db = db_client

    def all(self) -> list[TrustedMedicine]:
        return self.db.trusted_medicines()
