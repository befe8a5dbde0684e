"""
Database models for the clinic EMR backend.

These models capture the concepts the front-end screens work with:
staff users and their roles, patients and their consents, appointments,
invoices and payments, the ticket queues patients wait in and the
clinical notes written about them.  Field names mirror the JSON the
front end sends so that views can map request data with little
translation.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models


ZERO = Decimal('0.00')


class Clinic(models.Model):
    """A physical clinic site.  Queues and appointments belong to one."""
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=20, unique=True)
    address = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class User(AbstractUser):
    """Staff (or portal) account.

    Roles are not stored on the user itself: a user may hold several
    roles at once, so they live in :class:`UserRole`.  Use
    :meth:`role_names` or :meth:`has_any_role` rather than querying the
    table directly.
    """
    phone = models.CharField(max_length=32, blank=True)

    def role_names(self) -> set[str]:
        cached = getattr(self, '_role_cache', None)
        if cached is None:
            cached = set(self.roles.values_list('role', flat=True))
            self._role_cache = cached
        return cached

    def has_any_role(self, *roles: str) -> bool:
        if self.is_superuser:
            return True
        names = self.role_names()
        return 'admin' in names or bool(names.intersection(roles))

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return self.username


class UserRole(models.Model):
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('reception', 'Reception'),
        ('clinician', 'Clinician'),
        ('billing', 'Billing'),
        ('manager', 'Manager'),
        ('patient', 'Patient'),
    ]
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='roles')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('user', 'role')]

    def __str__(self) -> str:
        return f"{self.user} as {self.role}"


class Service(models.Model):
    """A billable service from the price catalogue (e.g. ``REG-FEE``)."""
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=50, default='service')
    description = models.TextField(blank=True)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=ZERO)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.code} {self.name}"


class Sequence(models.Model):
    """Named monotonic counter backing MRN and ticket token generation."""
    key = models.CharField(max_length=100, primary_key=True)
    value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


class Patient(models.Model):
    SEX_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('intersex', 'Intersex'),
        ('unknown', 'Unknown'),
    ]
    REGISTRATION_CHOICES = [
        ('pending', 'Pending'),
        ('consented', 'Consented'),
        ('paid', 'Paid'),
        ('completed', 'Completed'),
    ]
    mrn = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=100)
    middle_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField()
    sex_at_birth = models.CharField(max_length=10, choices=SEX_CHOICES, default='unknown')
    phone_mobile = models.CharField(max_length=32, db_index=True)
    phone_alt = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    national_id = models.CharField(max_length=64, blank=True)
    address_line1 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=100, blank=True)
    emergency_contact_name = models.CharField(max_length=255, blank=True)
    emergency_contact_phone = models.CharField(max_length=32, blank=True)
    emergency_contact_relationship = models.CharField(max_length=64, blank=True)
    registration_status = models.CharField(
        max_length=16, choices=REGISTRATION_CHOICES, default='pending', db_index=True
    )
    registration_notes = models.TextField(blank=True)
    consent_completed_at = models.DateTimeField(null=True, blank=True)
    payment_completed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients_registered'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='emr_patient_name_idx'),
        ]

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.middle_name, self.last_name) if p)

    def __str__(self) -> str:
        return f"{self.full_name} ({self.mrn})"


class ConsentForm(models.Model):
    CONSENT_TYPE_CHOICES = [
        ('general_treatment', 'General treatment'),
        ('data_privacy', 'Data privacy'),
        ('photography', 'Photography'),
        ('telehealth', 'Telehealth'),
        ('package_treatment', 'Package treatment'),
        ('research', 'Research'),
    ]
    SIGNED_BY_CHOICES = [
        ('patient', 'Patient'),
        ('guardian', 'Guardian'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='consents')
    consent_type = models.CharField(max_length=32, choices=CONSENT_TYPE_CHOICES)
    version = models.CharField(max_length=20, default='1.0')
    signed_by = models.CharField(max_length=10, choices=SIGNED_BY_CHOICES, default='patient')
    guardian_name = models.CharField(max_length=255, blank=True)
    guardian_relationship = models.CharField(max_length=64, blank=True)
    guardian_phone = models.CharField(max_length=32, blank=True)
    guardian_national_id = models.CharField(max_length=64, blank=True)
    # Signature image as a data URL captured by the signature pad
    signature_blob = models.TextField()
    evidence = models.JSONField(default=dict, blank=True)
    signed_at = models.DateTimeField()
    witness = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='consents_witnessed'
    )
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.consent_type} for {self.patient_id}"


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('booked', 'Booked'),
        ('confirmed', 'Confirmed'),
        ('arrived', 'Arrived'),
        ('in_progress', 'In progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('no_show', 'No show'),
        ('rescheduled', 'Rescheduled'),
    ]
    SOURCE_CHOICES = [
        ('call_center', 'Call center'),
        ('website', 'Website'),
        ('walk_in', 'Walk-in'),
        ('mobile_app', 'Mobile app'),
        ('referral', 'Referral'),
    ]
    ACTIVE_STATUSES = ('booked', 'confirmed', 'arrived', 'in_progress')

    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name='appointments')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    provider = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='provider_appointments'
    )
    service = models.ForeignKey(Service, null=True, blank=True, on_delete=models.SET_NULL)
    scheduled_start = models.DateTimeField(db_index=True)
    scheduled_end = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='booked', db_index=True)
    source = models.CharField(max_length=16, choices=SOURCE_CHOICES, default='walk_in')
    reason_for_visit = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    rescheduled_from = models.OneToOneField(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='rescheduled_to'
    )
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['provider', 'scheduled_start', 'scheduled_end'], name='emr_appt_provider_slot_idx'),
        ]

    def __str__(self) -> str:
        return f"Appointment {self.id} {self.patient_id} @ {self.scheduled_start:%F %H:%M}"


class Invoice(models.Model):
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('issued', 'Issued'),
        ('partial', 'Partially paid'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
        ('void', 'Void'),
    ]
    KIND_CHOICES = [
        ('registration', 'Registration'),
        ('consultation', 'Consultation'),
        ('general', 'General'),
    ]
    OPEN_STATUSES = ('issued', 'partial')

    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='invoices')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='invoices'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='draft', db_index=True)
    kind = models.CharField(max_length=16, choices=KIND_CHOICES, default='general')
    lines = models.JSONField(default=list)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    discount_code = models.CharField(max_length=50, blank=True)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    balance_due = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    issued_at = models.DateTimeField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='invoices_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='emr_invoice_patient_idx'),
        ]

    def __str__(self) -> str:
        return f"Invoice {self.id} ({self.status}) {self.total_amount}"


class Payment(models.Model):
    METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('bank', 'Bank transfer'),
        ('mobile_money', 'Mobile money'),
        ('wallet', 'Wallet'),
        ('insurance', 'Insurance'),
        ('online', 'Online'),
    ]
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=16, choices=METHOD_CHOICES, default='cash')
    currency = models.CharField(max_length=8, blank=True)
    transaction_ref = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    received_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments_received'
    )
    received_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self) -> str:
        return f"Payment {self.id} {self.amount} on invoice {self.invoice_id}"


class Refund(models.Model):
    payment = models.ForeignKey(Payment, on_delete=models.PROTECT, related_name='refunds')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.TextField()
    approved_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='refunds_approved'
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Refund {self.id} {self.amount} of payment {self.payment_id}"


class Queue(models.Model):
    TYPE_CHOICES = [
        ('triage', 'Triage'),
        ('doctor', 'Doctor'),
        ('lab', 'Laboratory'),
        ('imaging', 'Imaging'),
        ('cashier', 'Cashier'),
        ('pharmacy', 'Pharmacy'),
    ]
    # Queue types a patient may only join once their invoice is paid
    PAYMENT_GATED_TYPES = ('triage', 'doctor')

    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='queues')
    name = models.CharField(max_length=255)
    queue_type = models.CharField(max_length=16, choices=TYPE_CHOICES, db_index=True)
    prefix = models.CharField(max_length=8, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    sla_minutes = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} [{self.queue_type}]"


class Ticket(models.Model):
    STATUS_CHOICES = [
        ('waiting', 'Waiting'),
        ('called', 'Called'),
        ('served', 'Served'),
        ('no_show', 'No show'),
        ('transferred', 'Transferred'),
    ]
    PRIORITY_CHOICES = [
        ('routine', 'Routine'),
        ('stat', 'Stat'),
        ('vip', 'VIP'),
    ]
    ACTIVE_STATUSES = ('waiting', 'called')

    queue = models.ForeignKey(Queue, on_delete=models.CASCADE, related_name='tickets')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='tickets')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='tickets'
    )
    token_number = models.CharField(max_length=20, db_index=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='waiting', db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='routine', db_index=True)
    notes = models.TextField(blank=True)
    called_at = models.DateTimeField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)
    served_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='tickets_served'
    )
    transferred_to = models.OneToOneField(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='transferred_from'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['queue', 'status', 'created_at'], name='emr_ticket_queue_status_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.token_number} in {self.queue_id} ({self.status})"


class TicketTransition(models.Model):
    """Records a status transition for a ticket."""
    ticket = models.ForeignKey(Ticket, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=12, null=True, blank=True)
    to_status = models.CharField(max_length=12)
    operator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='ticket_transitions'
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.ticket_id}: {self.from_status} → {self.to_status}"


class EMRNote(models.Model):
    NOTE_TYPE_CHOICES = [
        ('subjective', 'Subjective'),
        ('objective', 'Objective'),
        ('assessment', 'Assessment'),
        ('plan', 'Plan'),
        ('discharge', 'Discharge'),
        ('admin', 'Administrative'),
        ('follow_up', 'Follow-up'),
        ('message', 'Message'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='notes')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='clinical_notes'
    )
    author = models.ForeignKey(User, on_delete=models.PROTECT, related_name='emr_notes')
    note_type = models.CharField(max_length=16, choices=NOTE_TYPE_CHOICES)
    content = models.TextField()
    tags = models.JSONField(default=list, blank=True)
    visibility = models.CharField(max_length=16, default='clinical')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'created_at'], name='emr_note_patient_idx')]

    def __str__(self) -> str:
        return f"{self.note_type} note {self.id} for {self.patient_id}"


class NotificationTemplate(models.Model):
    TYPE_CHOICES = [
        ('email', 'Email'),
        ('sms', 'SMS'),
        ('internal', 'Internal'),
    ]
    name = models.CharField(max_length=100, unique=True)
    notification_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='email')
    subject = models.CharField(max_length=255, blank=True)
    body = models.TextField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class NotificationLog(models.Model):
    RECIPIENT_TYPE_CHOICES = [
        ('user', 'User'),
        ('role', 'Role'),
        ('patient', 'Patient'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('sent', 'Sent'),
        ('failed', 'Failed'),
    ]
    recipient_type = models.CharField(max_length=10, choices=RECIPIENT_TYPE_CHOICES)
    recipient_id = models.CharField(max_length=64)
    notification_type = models.CharField(max_length=10, choices=NotificationTemplate.TYPE_CHOICES)
    subject = models.CharField(max_length=255, blank=True)
    body = models.TextField()
    template = models.ForeignKey(
        NotificationTemplate, null=True, blank=True, on_delete=models.SET_NULL, related_name='logs'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending', db_index=True)
    error_message = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='notifications_sent'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.notification_type} to {self.recipient_type}:{self.recipient_id} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    resource_type = models.CharField(max_length=64, blank=True)
    resource_id = models.CharField(max_length=64, blank=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='emr_audit_action_idx'),
            models.Index(fields=['resource_type', 'resource_id', 'created_at'], name='emr_audit_resource_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
