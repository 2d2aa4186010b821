"""
Medicine Authenticity Verification.

Checks a medicine the user is holding against a registry of trusted
products:
  - unknown name/manufacturer pair   → WARNING (ask a pharmacist)
  - expiry date in the past          → EXPIRED
  - batch number off the maker's pattern → WARNING
  - otherwise                        → SAFE

The registry is pluggable: ``StaticMedicineRegistry`` ships the built-in
table, ``database.mongo_client.MongoMedicineRegistry`` reads MongoDB.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    EXPIRED = "expired"


STATUS_TITLES: dict[VerificationStatus, str] = {
    VerificationStatus.SAFE: "✅ Medicine Verified Safe",
    VerificationStatus.WARNING: "⚠️ Verification Warning",
    VerificationStatus.EXPIRED: "⛔ Medicine Expired",
}


class VerificationInputError(ValueError):
    """The form was missing what verification needs."""


@dataclass(frozen=True)
class TrustedMedicine:
    name: str
    manufacturer: str
    batch_pattern: str
    description: str = ""

    def batch_matches(self, batch_number: str) -> bool:
        return re.match(self.batch_pattern, batch_number.strip()) is not None


@dataclass(frozen=True)
class VerificationRequest:
    medicine_name: str = ""
    manufacturer: str = ""
    batch_number: str = ""
    expiry_date: date | None = None
    photo_path: str | None = None


@dataclass(frozen=True)
class VerificationResult:
    status: VerificationStatus
    message: str
    medicine_name: str
    manufacturer: str
    batch_number: str = ""
    expiry_date: date | None = None
    description: str = ""
    verified_at: datetime = field(default_factory=datetime.now)

    @property
    def title(self) -> str:
        return STATUS_TITLES[self.status]


# ── Registries ─────────────────────────────────────────────────────────────

class MedicineRegistry(ABC):
    """Source of trusted medicines."""

    @abstractmethod
    def all(self) -> list[TrustedMedicine]:
        ...

    def find(self, name: str, manufacturer: str) -> TrustedMedicine | None:
        """Case-insensitive substring match on both name and manufacturer."""
        name_lower = name.strip().lower()
        manufacturer_lower = manufacturer.strip().lower()
        for medicine in self.all():
            if (
                name_lower in medicine.name.lower()
                and manufacturer_lower in medicine.manufacturer.lower()
            ):
                return medicine
        return None


TRUSTED_MEDICINES: list[TrustedMedicine] = [
    TrustedMedicine(
        name="Paracetamol 500mg",
        manufacturer="Cipla Ltd",
        batch_pattern=r"^(PCM|PAR)",
        description="Pain reliever and fever reducer",
    ),
    TrustedMedicine(
        name="Dolo 650",
        manufacturer="Micro Labs",
        batch_pattern=r"^(DOL|DL)",
        description="Fever and pain relief medication",
    ),
    TrustedMedicine(
        name="Crocin 650",
        manufacturer="GSK",
        batch_pattern=r"^(CRO|CR)",
        description="Fever and pain relief",
    ),
    TrustedMedicine(
        name="Azithromycin 500mg",
        manufacturer="Cipla Ltd",
        batch_pattern=r"^(AZI|AZ)",
        description="Antibiotic for bacterial infections",
    ),
]


class StaticMedicineRegistry(MedicineRegistry):
    def __init__(self, medicines: list[TrustedMedicine] | None = None):
        self._medicines = list(medicines if medicines is not None else TRUSTED_MEDICINES)

    def all(self) -> list[TrustedMedicine]:
        return list(self._medicines)


# ── Verification ───────────────────────────────────────────────────────────

def verify_medicine(
    request: VerificationRequest,
    registry: MedicineRegistry,
    today: date | None = None,
) -> VerificationResult:
    """
    Verify one medicine.

    Args:
        request: What the user entered (and optionally a package photo).
        registry: Trusted medicine source.
        today: Reference date for the expiry check, defaults to today.

    Raises:
        VerificationInputError: if neither a photo nor both the name and
            manufacturer were given.
    """
    name = request.medicine_name.strip()
    manufacturer = request.manufacturer.strip()
    batch = request.batch_number.strip()
    today = today or date.today()

    if not (name and manufacturer):
        if not request.photo_path:
            raise VerificationInputError(
                "Please fill in medicine name and manufacturer, or upload a photo."
            )
        logger.info("[Verify] Photo-only request, asking for package details")
        return VerificationResult(
            status=VerificationStatus.WARNING,
            message=(
                "We could not read the package details from the photo alone. "
                "Please enter the medicine name and manufacturer printed on the strip."
            ),
            medicine_name=name,
            manufacturer=manufacturer,
            batch_number=batch,
            expiry_date=request.expiry_date,
        )

    common = dict(
        medicine_name=name,
        manufacturer=manufacturer,
        batch_number=batch,
        expiry_date=request.expiry_date,
    )

    trusted = registry.find(name, manufacturer)
    if trusted is None:
        logger.info("[Verify] Unknown medicine: %s / %s", name, manufacturer)
        return VerificationResult(
            status=VerificationStatus.WARNING,
            message="Medicine not found in our database. Please consult a pharmacist.",
            **common,
        )

    if request.expiry_date and request.expiry_date < today:
        return VerificationResult(
            status=VerificationStatus.EXPIRED,
            message="This medicine has expired. Do not use it.",
            **common,
        )

    if batch and not trusted.batch_matches(batch):
        return VerificationResult(
            status=VerificationStatus.WARNING,
            message="Batch number format does not match standard pattern. Verify with pharmacist.",
            **common,
        )

    return VerificationResult(
        status=VerificationStatus.SAFE,
        message="This medicine is verified as authentic and safe to use.",
        description=trusted.description,
        **common,
    )
