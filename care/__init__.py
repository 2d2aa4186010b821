"""
Care package — medicine verification, emergency reports and reminders.
"""

from care.geocoding import BigDataCloudGeocoder, locate
from care.incidents import IncidentReport, StaticHospitalDirectory, submit_incident
from care.medicine import StaticMedicineRegistry, VerificationRequest, verify_medicine
from care.reminders import ReminderBook

__all__ = [
    "BigDataCloudGeocoder",
    "IncidentReport",
    "ReminderBook",
    "StaticHospitalDirectory",
    "StaticMedicineRegistry",
    "VerificationRequest",
    "locate",
    "submit_incident",
    "verify_medicine",
]
