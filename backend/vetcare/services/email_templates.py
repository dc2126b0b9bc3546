"""HTML bodies for appointment lifecycle e-mails."""

import html

_FOOTER = """
    <hr>
    <p style="color: #666; font-size: 0.9em;">
        This is an automated message from the VetCare appointment system.
    </p>
"""

# Positional placeholders: client name, date, pet name, veterinarian name, confirmation link
DEFAULT_REMINDER_TEMPLATE = """
<html>
<body>
    <h2>Veterinary Appointment Reminder</h2>
    <p>Dear {0},</p>
    <p>This is a reminder of your upcoming appointment:</p>
    <ul>
        <li><strong>Date:</strong> {1}</li>
        <li><strong>Pet:</strong> {2}</li>
        <li><strong>Veterinarian:</strong> Dr. {3}</li>
    </ul>
    <p>Please confirm your attendance using the link below:</p>
    <a href="{4}" style="padding: 10px 20px; background-color: #4CAF50; color: white; text-decoration: none; border-radius: 5px;">
        Confirm Attendance
    </a>
    <p>If you need to reschedule, please contact us as soon as possible.</p>
</body>
</html>
"""


def _escape(value: str) -> str:
    return html.escape(value or "", quote=True)


def render_reminder(template: str, client_name: str, date: str, pet_name: str, vet_name: str, link: str) -> str:
    return template.format(
        _escape(client_name), _escape(date), _escape(pet_name), _escape(vet_name), _escape(link)
    )


def new_appointment_client(pet_name: str, date: str, vet_name: str) -> str:
    return f"""
<html>
<body>
    <h2>New Appointment Scheduled</h2>
    <p>An appointment has been scheduled for {_escape(pet_name)}.</p>
    <ul>
        <li><strong>Date:</strong> {_escape(date)}</li>
        <li><strong>Veterinarian:</strong> Dr. {_escape(vet_name)}</li>
    </ul>
    <p>You will receive a reminder with a confirmation link before the visit.</p>
    {_FOOTER}
</body>
</html>
"""


def new_appointment_vet(pet_name: str, date: str, client_name: str) -> str:
    return f"""
<html>
<body>
    <h2>New Appointment Scheduled</h2>
    <ul>
        <li><strong>Pet:</strong> {_escape(pet_name)}</li>
        <li><strong>Client:</strong> {_escape(client_name)}</li>
        <li><strong>Date:</strong> {_escape(date)}</li>
    </ul>
    {_FOOTER}
</body>
</html>
"""


def rescheduled_client(pet_name: str, old_date: str, new_date: str, vet_name: str) -> str:
    return f"""
<html>
<body>
    <h2>Appointment Rescheduled</h2>
    <p>Your appointment for {_escape(pet_name)} has been rescheduled.</p>
    <ul>
        <li><strong>Previous date:</strong> {_escape(old_date)}</li>
        <li><strong>New date:</strong> {_escape(new_date)}</li>
        <li><strong>Veterinarian:</strong> Dr. {_escape(vet_name)}</li>
    </ul>
    <p>If you need any further changes, please contact us.</p>
    {_FOOTER}
</body>
</html>
"""


def rescheduled_vet(pet_name: str, client_name: str, old_date: str, new_date: str) -> str:
    return f"""
<html>
<body>
    <h2>Appointment Rescheduled</h2>
    <ul>
        <li><strong>Pet:</strong> {_escape(pet_name)}</li>
        <li><strong>Client:</strong> {_escape(client_name)}</li>
        <li><strong>Previous date:</strong> {_escape(old_date)}</li>
        <li><strong>New date:</strong> {_escape(new_date)}</li>
    </ul>
    <p style="color: #E74C3C;">
        If the new date does not fit your availability, please contact the client.
    </p>
    {_FOOTER}
</body>
</html>
"""


def cancelled_client(pet_name: str, date: str, vet_name: str) -> str:
    return f"""
<html>
<body>
    <h2>Appointment Cancelled</h2>
    <p>Your appointment for {_escape(pet_name)} has been cancelled.</p>
    <ul>
        <li><strong>Date:</strong> {_escape(date)}</li>
        <li><strong>Veterinarian:</strong> Dr. {_escape(vet_name)}</li>
    </ul>
    <p>If you would like to book a new appointment, please contact us.</p>
    {_FOOTER}
</body>
</html>
"""


def cancelled_vet(pet_name: str, client_name: str, date: str) -> str:
    return f"""
<html>
<body>
    <h2>Appointment Cancelled</h2>
    <ul>
        <li><strong>Pet:</strong> {_escape(pet_name)}</li>
        <li><strong>Client:</strong> {_escape(client_name)}</li>
        <li><strong>Cancelled date:</strong> {_escape(date)}</li>
    </ul>
    <p>The slot in your schedule is free again.</p>
    {_FOOTER}
</body>
</html>
"""
