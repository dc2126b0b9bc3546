from enum import Enum


class Role(str, Enum):
    """System roles for RBAC."""
    ADMIN = "admin"
    VETERINARIAN = "veterinarian"
    RECEPTIONIST = "receptionist"
    CLIENT = "client"  # pet owner


class Permission(str, Enum):
    VIEW_DAILY_APPOINTMENTS = "VIEW_DAILY_APPOINTMENTS"
    VIEW_PET_APPOINTMENTS = "VIEW_PET_APPOINTMENTS"
    SCHEDULE_APPOINTMENT = "SCHEDULE_APPOINTMENT"
    RESCHEDULE_APPOINTMENT = "RESCHEDULE_APPOINTMENT"
    MANAGE_REMINDERS = "MANAGE_REMINDERS"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"  # set outside this service


# No cancel/reschedule is accepted on these
FINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})

# Lead time required before the appointment date
MIN_CANCEL_HOURS = 24
MIN_RESCHEDULE_HOURS = 24

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.VETERINARIAN: frozenset({
        Permission.VIEW_DAILY_APPOINTMENTS,
        Permission.SCHEDULE_APPOINTMENT,
        Permission.RESCHEDULE_APPOINTMENT,
    }),
    Role.RECEPTIONIST: frozenset({
        Permission.VIEW_DAILY_APPOINTMENTS,
        Permission.SCHEDULE_APPOINTMENT,
        Permission.RESCHEDULE_APPOINTMENT,
    }),
    Role.CLIENT: frozenset({Permission.VIEW_PET_APPOINTMENTS}),
}
