"""
Medicine reminders shown in Dadi's reminder panel.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Reminder:
    id: int
    medicine: str
    time: str
    frequency: str
    active: bool = True


DEFAULT_REMINDERS = [
    Reminder(1, "Paracetamol 500mg", "08:00 AM", "twice daily"),
    Reminder(2, "Vitamin D3", "09:00 AM", "once daily"),
]


class ReminderBook:
    """Per-user reminder list. Ids are never reused."""

    def __init__(self, reminders: list[Reminder] | None = None):
        self._reminders = list(DEFAULT_REMINDERS if reminders is None else reminders)
        self._next_id = max((r.id for r in self._reminders), default=0) + 1

    def all(self) -> list[Reminder]:
        return list(self._reminders)

    def active(self) -> list[Reminder]:
        return [r for r in self._reminders if r.active]

    def add(self, medicine: str, time: str, frequency: str) -> Reminder:
        medicine = medicine.strip()
        if not medicine or not time.strip():
            raise ValueError("Medicine name and time are required for a reminder")
        reminder = Reminder(self._next_id, medicine, time.strip(), frequency.strip() or "once daily")
        self._next_id += 1
        self._reminders.append(reminder)
        return reminder

    def toggle(self, reminder_id: int) -> Reminder | None:
        for index, reminder in enumerate(self._reminders):
            if reminder.id == reminder_id:
                updated = replace(reminder, active=not reminder.active)
                self._reminders[index] = updated
                return updated
        return None

    def delete(self, reminder_id: int) -> bool:
        before = len(self._reminders)
        self._reminders = [r for r in self._reminders if r.id != reminder_id]
        return len(self._reminders) < before

    def as_rows(self) -> list[list]:
        """Rows for the reminder table widget."""
        return [
            [r.id, r.medicine, r.time, r.frequency, "✅ On" if r.active else "⏸️ Off"]
            for r in self._reminders
        ]
