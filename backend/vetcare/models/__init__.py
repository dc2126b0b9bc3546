# Re-export Beanie documents
from .user import User
from .pet import Pet, MedicalRecord
from .appointment import Appointment
from .reminder import ReminderConfig, ConfirmationToken, REMINDER_CONFIG_ID
