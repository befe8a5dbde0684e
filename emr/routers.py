"""
URL mappings for the clinic EMR API.

Paths are flat and carry no trailing slash, matching what the
front-end calls.
"""
from django.urls import path, include

from .auth_views import login_view, jwt_refresh_view, logout_view, me_view
from .views import appointments, billing, clinical, config, consents, dashboard, health, notifications
from .views import patients, queues, users


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/auth/logout', logout_view),
    path('api/auth/me', me_view),
    # Administration
    path('api/admin/users', users.users),
    path('api/admin/users/<int:user_id>/roles', users.user_roles),
    path('api/admin/users/<int:user_id>/reset-password', users.user_reset_password),
    path('api/admin/audit-logs', users.audit_logs),
    # Configuration
    path('api/clinics', config.clinics),
    path('api/services', config.services),
    path('api/queues', config.queues),
    path('api/queues/display', queues.queue_display),
    path('api/queues/<int:queue_id>/update', config.queue_update),
    # Patients
    path('api/patients', patients.patients),
    path('api/patients/incomplete', patients.patients_incomplete),
    path('api/patients/<int:patient_id>', patients.patient_detail),
    path('api/patients/<int:patient_id>/update', patients.patient_update),
    path('api/patients/<int:patient_id>/summary', patients.patient_summary),
    path('api/patients/<int:patient_id>/consents', consents.patient_consents),
    path('api/patients/<int:patient_id>/notes', clinical.patient_notes),
    # Appointments
    path('api/appointments', appointments.appointments),
    path('api/appointments/<int:appointment_id>/status', appointments.appointment_status),
    path('api/appointments/<int:appointment_id>/reschedule', appointments.appointment_reschedule),
    # Billing
    path('api/invoices', billing.invoices),
    path('api/invoices/<int:invoice_id>', billing.invoice_detail),
    path('api/invoices/<int:invoice_id>/issue', billing.invoice_issue),
    path('api/invoices/<int:invoice_id>/void', billing.invoice_void),
    path('api/invoices/<int:invoice_id>/payments', billing.invoice_payments),
    path('api/payments', billing.payments),
    path('api/refunds', billing.refunds),
    path('api/billing/stats', billing.stats),
    # Queues and tickets
    path('api/queues/<int:queue_id>/tickets', queues.queue_tickets),
    path('api/queues/<int:queue_id>/call-next', queues.queue_call_next),
    path('api/queues/<int:queue_id>/stats', queues.queue_stats_view),
    path('api/tickets', queues.tickets),
    path('api/tickets/<int:ticket_id>/status', queues.ticket_status),
    path('api/tickets/<int:ticket_id>/transfer', queues.ticket_transfer),
    path('api/tickets/<int:ticket_id>/triage', clinical.ticket_triage),
    # Notifications
    path('api/notifications', notifications.notifications),
    path('api/notification-templates', notifications.notification_templates),
    # Dashboard
    path('api/dashboard', dashboard.dashboard),
]
