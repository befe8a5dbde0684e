"""
Integration tests for the clinic EMR API.

These tests drive the front-desk workflow end to end over HTTP:
registration, payment, consent, the automatic triage ticket, the
triage hand-off to a doctor and the public display board.  They also
check role enforcement and the shape of error responses.  The tests use
Django REST Framework's APIClient within the APITestCase base class.

To run the tests:

```
pytest -q emr/tests
```
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core import mail
from django.core.management import call_command
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ..models import Appointment, AuditEvent, Clinic, NotificationLog, Patient, Queue, Service, Ticket, User, UserRole

PASSWORD = "Str0ng!Passw0rd"
SIGNATURE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk"


class ClinicAPITests(APITestCase):
    def setUp(self) -> None:
        """Create a clinic with the registration fee, triage and doctor queues and staff."""
        self.clinic = Clinic.objects.create(name="Main Clinic", code="MAIN")
        Service.objects.create(code="REG-FEE", name="Registration fee", unit_price=Decimal("50.00"))
        self.triage = Queue.objects.create(clinic=self.clinic, name="Triage", queue_type="triage", prefix="T")
        self.doctor = Queue.objects.create(clinic=self.clinic, name="General Practice", queue_type="doctor",
                                           prefix="D")

        self.reception = self._user("desk", "reception")
        self.nurse = self._user("nurse", "clinician")
        self.cashier = self._user("cashier", "billing")
        self.portal = self._user("portal", "patient")

    def _user(self, username: str, role: str) -> User:
        user = User.objects.create_user(username=username, password=PASSWORD)
        UserRole.objects.create(user=user, role=role)
        return user

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def _register(self) -> dict:
        client = self.authenticate(self.reception)
        response = client.post("/api/patients", {
            "first_name": "Hana",
            "last_name": "Tesfaye",
            "date_of_birth": "1992-03-04",
            "phone_mobile": "+251911222333",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_registration_payment_and_consent_issue_triage_ticket(self):
        """Paying and signing consent, in that order, puts the patient in triage."""
        registered = self._register()
        patient_id = registered["data"]["id"]
        invoice = registered["invoice"]
        self.assertEqual(registered["data"]["registrationStatus"], "pending")
        self.assertEqual(invoice["status"], "issued")
        self.assertEqual(invoice["totalAmount"], "50.00")

        cashier = self.authenticate(self.cashier)
        response = cashier.post(f"/api/invoices/{invoice['id']}/payments",
                                {"amount": "50.00", "method": "cash"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["invoice"]["status"], "paid")
        self.assertIsNone(response.data["ticket"])

        desk = self.authenticate(self.reception)
        response = desk.post(f"/api/patients/{patient_id}/consents",
                             {"consent_type": "general_treatment", "signature_blob": SIGNATURE}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        ticket = response.data["ticket"]
        self.assertEqual(ticket["queueId"], self.triage.id)
        self.assertEqual(ticket["tokenNumber"], "T001")
        self.assertEqual(ticket["status"], "waiting")

        summary = desk.get(f"/api/patients/{patient_id}/summary")
        self.assertEqual(summary.data["data"]["patient"]["registrationStatus"], "completed")
        self.assertEqual(summary.data["data"]["activeTicket"]["id"], ticket["id"])
        self.assertNotIn("signatureBlob", summary.data["data"]["consents"][0])

    def test_unpaid_patient_cannot_be_queued_manually(self):
        """Manual enqueue into a gated queue answers 402 with the error envelope."""
        registered = self._register()
        desk = self.authenticate(self.reception)
        response = desk.post("/api/tickets", {"patient_id": registered["data"]["id"], "queue_id": self.triage.id},
                             format="json")
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertFalse(response.data["ok"])
        self.assertEqual(response.data["error"]["code"], "payment_required")
        self.assertIn("is issued", response.data["error"]["message"])

    def test_call_next_and_triage_to_doctor(self):
        """The nurse calls the next ticket and triage hands it to the doctor queue."""
        registered = self._register()
        patient_id = registered["data"]["id"]
        self.authenticate(self.cashier).post(f"/api/invoices/{registered['invoice']['id']}/payments",
                                             {"amount": "50.00"}, format="json")
        self.authenticate(self.reception).post(f"/api/patients/{patient_id}/consents",
                                               {"consent_type": "general_treatment", "signature_blob": SIGNATURE},
                                               format="json")

        nurse = self.authenticate(self.nurse)
        response = nurse.post(f"/api/queues/{self.triage.id}/call-next")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["status"], "called")
        ticket_id = response.data["data"]["id"]

        response = nurse.post(f"/api/queues/{self.triage.id}/call-next")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"]["code"], "not_found")

        response = nurse.post(f"/api/tickets/{ticket_id}/triage",
                              {"chief_complaint": "Fever", "notes": "38.9C"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        doctor_ticket = Ticket.objects.get(queue=self.doctor)
        self.assertEqual(doctor_ticket.token_number, "T001")
        self.assertEqual(doctor_ticket.status, "waiting")

        notes = nurse.get(f"/api/patients/{patient_id}/notes")
        self.assertIn("**Chief Complaint:** Fever", notes.data["data"][0]["content"])

    def test_transferred_status_needs_the_transfer_endpoint(self):
        ticket = Ticket.objects.create(queue=self.doctor, patient=self._patient(), token_number="D001")
        desk = self.authenticate(self.reception)
        response = desk.post(f"/api/tickets/{ticket.id}/status", {"status": "transferred"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "invalid")

        response = desk.post(f"/api/tickets/{ticket.id}/transfer", {"target_queue_id": self.triage.id},
                             format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["data"]["tokenNumber"], "D001")
        self.assertEqual(response.data["previousId"], ticket.id)

    def _patient(self, mrn: str = "MRN-X1"):
        return Patient.objects.create(mrn=mrn, first_name="Yared", last_name="Bekele",
                                      date_of_birth="1980-01-01", phone_mobile="+251900000001")

    def test_display_board_is_public(self):
        Ticket.objects.create(queue=self.triage, patient=self._patient(), token_number="T009")
        response = APIClient().get("/api/queues/display")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        board = {b["name"]: b for b in response.data["data"]}
        self.assertEqual(board["Triage"]["next"], ["T009"])
        self.assertNotIn("patientName", str(response.data))

    def test_anonymous_requests_are_rejected(self):
        response = APIClient().get("/api/patients")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["error"]["code"], "not_authenticated")
        self.assertIn("WWW-Authenticate", response)

    def test_roles_are_enforced(self):
        """Portal patients see nothing and clinicians cannot take payments or register."""
        portal = self.authenticate(self.portal)
        self.assertEqual(portal.get("/api/patients").status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(portal.get("/api/dashboard").status_code, status.HTTP_403_FORBIDDEN)

        nurse = self.authenticate(self.nurse)
        response = nurse.post("/api/patients", {"first_name": "A", "last_name": "B", "date_of_birth": "2000-01-01",
                                                "phone_mobile": "1"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"]["code"], "permission_denied")
        self.assertEqual(nurse.get("/api/billing/stats").status_code, status.HTTP_403_FORBIDDEN)

        desk = self.authenticate(self.reception)
        self.assertEqual(desk.get("/api/admin/users").status_code, status.HTTP_403_FORBIDDEN)

    def test_validation_errors_use_the_envelope(self):
        desk = self.authenticate(self.reception)
        response = desk.post("/api/patients", {"first_name": "Hana", "date_of_birth": "2999-01-01"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["ok"])
        message = response.data["error"]["message"]
        self.assertIn("last_name", message)
        self.assertIn("date_of_birth", message)

    def test_dashboard_counts(self):
        self._register()
        response = self.authenticate(self.reception).get("/api/dashboard?fresh=1")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["ok"])

    def test_healthz_and_request_id(self):
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.authenticate(self.reception).get("/api/queues", HTTP_X_REQUEST_ID="abc123")
        self.assertEqual(response["X-Request-ID"], "abc123")

    def test_system_checks_pass(self):
        """Model relations and admin registrations pass Django's system checks."""
        call_command("check", stdout=StringIO(), stderr=StringIO())

    def _slot(self, hours: int = 24, minutes: int = 30) -> dict:
        start = (timezone.now() + timedelta(hours=hours)).replace(second=0, microsecond=0)
        return {"scheduled_start": start.isoformat(),
                "scheduled_end": (start + timedelta(minutes=minutes)).isoformat()}

    def test_book_change_status_and_reschedule_appointment(self):
        """Reception books, confirms and reschedules an appointment over HTTP."""
        patient = self._patient()
        desk = self.authenticate(self.reception)
        booking = {"clinic_id": self.clinic.id, "patient_id": patient.id, "provider_id": self.nurse.id,
                   "source": "phone", "reason_for_visit": "Follow-up", "notes": "bring lab results",
                   **self._slot()}
        response = desk.post("/api/appointments", booking, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        appt = response.data["data"]
        self.assertEqual(appt["status"], "booked")
        self.assertEqual(appt["notes"], "bring lab results")
        self.assertEqual(appt["providerId"], self.nurse.id)
        self.assertEqual(Appointment.objects.get(id=appt["id"]).notes, "bring lab results")

        response = desk.post("/api/appointments", {**booking, "patient_id": self._patient("MRN-X2").id},
                             format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "conflict")

        response = desk.post(f"/api/appointments/{appt['id']}/status", {"status": "confirmed"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["data"]["status"], "confirmed")

        response = desk.post(f"/api/appointments/{appt['id']}/status", {"status": "completed"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = desk.post(f"/api/appointments/{appt['id']}/reschedule", self._slot(hours=48), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["previousId"], appt["id"])
        self.assertEqual(response.data["data"]["rescheduledFrom"], appt["id"])
        self.assertEqual(response.data["data"]["notes"], "bring lab results")
        self.assertEqual(Appointment.objects.get(id=appt["id"]).status, "rescheduled")

        listed = desk.get("/api/appointments", {"status": "booked"})
        self.assertEqual([a["id"] for a in listed.data["data"]], [response.data["data"]["id"]])

    def test_appointment_booking_validates_and_needs_a_scheduler(self):
        patient = self._patient()
        desk = self.authenticate(self.reception)
        slot = self._slot()
        response = desk.post("/api/appointments", {"clinic_id": self.clinic.id, "patient_id": patient.id,
                                                   "scheduled_start": slot["scheduled_end"],
                                                   "scheduled_end": slot["scheduled_start"]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "invalid")

        response = self.authenticate(self.cashier).post(
            "/api/appointments", {"clinic_id": self.clinic.id, "patient_id": patient.id, **slot}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Appointment.objects.exists())

    def test_send_notifications(self):
        """Role emails are personalised per recipient and patient SMS are logged as sent."""
        self.nurse.first_name = "Nora"
        self.nurse.email = "nora@clinic.test"
        self.nurse.save()
        desk = self.authenticate(self.reception)

        response = desk.post("/api/notifications", {
            "recipient_type": "role",
            "role": "clinician",
            "notification_type": "email",
            "subject": "Rota",
            "body": "Hello {{first_name}}, the rota has changed.",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["sent"], 1)
        self.assertEqual(response.data["failed"], 0)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["nora@clinic.test"])
        self.assertEqual(mail.outbox[0].body, "Hello Nora, the rota has changed.")

        patient = self._patient()
        response = desk.post("/api/notifications", {
            "recipient_type": "patient",
            "recipient_ids": [patient.id],
            "notification_type": "sms",
            "body": "Dear {{name}}, your results are ready.",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["data"][0]["body"], "Dear Yared Bekele, your results are ready.")
        self.assertEqual(response.data["data"][0]["status"], "sent")
        self.assertEqual(NotificationLog.objects.count(), 2)
        self.assertTrue(AuditEvent.objects.filter(action="notification_send").exists())

        response = desk.post("/api/notifications", {"recipient_type": "patient", "notification_type": "sms",
                                                    "body": "Hi"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "invalid")

        nurse = self.authenticate(self.nurse)
        self.assertEqual(nurse.get("/api/notifications").status_code, status.HTTP_403_FORBIDDEN)
