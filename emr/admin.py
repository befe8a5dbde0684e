"""
Django admin registrations for the EMR models.

Lets superusers inspect and correct data through ``/admin/``.  Money
and audit records are read-mostly here; corrections to them should go
through the API so that balances and the audit trail stay consistent.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Appointment,
    Clinic,
    ConsentForm,
    EMRNote,
    Invoice,
    NotificationLog,
    NotificationTemplate,
    Patient,
    Payment,
    Queue,
    Refund,
    Sequence,
    Service,
    Ticket,
    TicketTransition,
    User,
    UserRole,
)


class UserRoleInline(admin.TabularInline):
    model = UserRole
    extra = 0


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'first_name', 'last_name', 'is_active', 'is_superuser')
    search_fields = ('username', 'first_name', 'last_name', 'email')
    inlines = [UserRoleInline]


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'is_active')


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'type', 'unit_price', 'tax_rate', 'is_active')
    list_filter = ('type', 'is_active')
    search_fields = ('code', 'name')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('mrn', 'last_name', 'first_name', 'phone_mobile', 'registration_status', 'created_at')
    list_filter = ('registration_status', 'sex_at_birth')
    search_fields = ('mrn', 'first_name', 'last_name', 'phone_mobile', 'national_id')
    readonly_fields = ('mrn',)


@admin.register(ConsentForm)
class ConsentFormAdmin(admin.ModelAdmin):
    list_display = ('patient', 'consent_type', 'signed_by', 'signed_at', 'expires_at')
    list_filter = ('consent_type', 'signed_by')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'provider', 'scheduled_start', 'status')
    list_filter = ('status', 'source', 'clinic')


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ('amount', 'method', 'received_by', 'received_at')


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'kind', 'status', 'total_amount', 'balance_due', 'created_at')
    list_filter = ('status', 'kind')
    readonly_fields = ('subtotal', 'tax_amount', 'total_amount', 'balance_due')
    inlines = [PaymentInline]


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ('id', 'payment', 'amount', 'approved_by', 'processed_at')


@admin.register(Queue)
class QueueAdmin(admin.ModelAdmin):
    list_display = ('name', 'queue_type', 'prefix', 'clinic', 'is_active', 'sla_minutes')
    list_filter = ('queue_type', 'is_active')


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ('token_number', 'queue', 'patient', 'status', 'priority', 'created_at')
    list_filter = ('status', 'priority', 'queue')
    search_fields = ('token_number', 'patient__mrn')


@admin.register(TicketTransition)
class TicketTransitionAdmin(admin.ModelAdmin):
    list_display = ('ticket', 'from_status', 'to_status', 'operator', 'timestamp')


@admin.register(EMRNote)
class EMRNoteAdmin(admin.ModelAdmin):
    list_display = ('patient', 'note_type', 'author', 'created_at')
    list_filter = ('note_type',)


@admin.register(NotificationTemplate)
class NotificationTemplateAdmin(admin.ModelAdmin):
    list_display = ('name', 'notification_type', 'is_active')


@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ('recipient_type', 'recipient_id', 'notification_type', 'status', 'sent_at')
    list_filter = ('status', 'notification_type')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'resource_type', 'resource_id', 'created_at')
    list_filter = ('action', 'resource_type')
    search_fields = ('resource_id',)


admin.site.register(Sequence)
