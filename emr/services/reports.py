from django.conf import settings
from django.core.cache import cache
from django.db.models import Count, Sum
from django.utils import timezone

from emr.models import Appointment, Patient, Payment, Ticket
from emr.services.billing import money

DASHBOARD_CACHE_KEY = 'dashboard:stats'


def dashboard_stats(use_cache: bool = True) -> dict:
    if use_cache:
        cached = cache.get(DASHBOARD_CACHE_KEY)
        if cached is not None:
            return cached

    today = timezone.localdate()
    day_start = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
    appts = {s: 0 for s, _ in Appointment.STATUS_CHOICES}
    for row in Appointment.objects.filter(scheduled_start__date=today).values('status').annotate(n=Count('id')):
        appts[row['status']] = row['n']
    data = {
        'patientsToday': Patient.objects.filter(created_at__gte=day_start).count(),
        'appointmentsToday': sum(appts.values()),
        'appointmentsByStatus': appts,
        'ticketsWaiting': Ticket.objects.filter(status='waiting').count(),
        'ticketsCalled': Ticket.objects.filter(status='called').count(),
        'revenueToday': str(money(Payment.objects.filter(received_at__gte=day_start).aggregate(s=Sum('amount'))['s'])),
        'incompleteRegistrations': Patient.objects.exclude(registration_status='completed').count(),
        'generatedAt': timezone.now().isoformat(),
    }
    cache.set(DASHBOARD_CACHE_KEY, data, settings.CLINIC_DASHBOARD_CACHE_SECONDS)
    return data
