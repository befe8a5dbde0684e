from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from emr.exceptions import ConflictError
from emr.services.appointments import (
    book_appointment,
    change_appointment_status,
    list_appointments,
    reschedule_appointment,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def slot():
    start = (timezone.now() + timedelta(days=1)).replace(minute=0, second=0, microsecond=0)
    return start, start + timedelta(minutes=30)


def _book(operator, clinic, patient, provider, start, end, **extra):
    return book_appointment(operator, clinic=clinic, patient=patient, provider=provider,
                            scheduled_start=start, scheduled_end=end, **extra)


def test_overlapping_slot_is_rejected(reception, clinician, clinic, make_patient, slot):
    start, end = slot
    _book(reception, clinic, make_patient(), clinician, start, end)
    with pytest.raises(ConflictError):
        _book(reception, clinic, make_patient(), clinician,
              start + timedelta(minutes=15), end + timedelta(minutes=15))


def test_adjacent_slots_and_other_providers_are_fine(reception, clinician, make_user, clinic, make_patient, slot):
    start, end = slot
    _book(reception, clinic, make_patient(), clinician, start, end)
    _book(reception, clinic, make_patient(), clinician, end, end + timedelta(minutes=30))
    other = make_user('doc2', 'clinician')
    _book(reception, clinic, make_patient(), other, start, end)
    # no provider means no slot check
    _book(reception, clinic, make_patient(), None, start, end)


def test_cancelled_appointment_frees_the_slot(reception, clinician, clinic, make_patient, slot):
    start, end = slot
    appt = _book(reception, clinic, make_patient(), clinician, start, end, reason_for_visit='<span>cough</span>')
    assert appt.reason_for_visit == 'cough'
    change_appointment_status(reception, appt, 'cancelled', 'patient called')
    _book(reception, clinic, make_patient(), clinician, start, end)


def test_end_must_follow_start(reception, clinic, make_patient, slot):
    start, _ = slot
    with pytest.raises(ValidationError):
        _book(reception, clinic, make_patient(), None, start, start)


def test_status_transitions(reception, clinician, clinic, make_patient, slot):
    appt = _book(reception, clinic, make_patient(), clinician, *slot)
    for status in ('confirmed', 'arrived', 'in_progress', 'completed'):
        appt = change_appointment_status(clinician, appt, status)
    assert appt.status == 'completed'
    with pytest.raises(ConflictError):
        change_appointment_status(clinician, appt, 'cancelled')


def test_booked_cannot_skip_to_completed(reception, clinic, make_patient, slot):
    appt = _book(reception, clinic, make_patient(), None, *slot)
    with pytest.raises(ConflictError):
        change_appointment_status(reception, appt, 'completed')


def test_reschedule_links_old_and_new(reception, clinician, clinic, make_patient, slot):
    start, end = slot
    patient = make_patient()
    appt = _book(reception, clinic, patient, clinician, start, end, notes='first visit')
    # moving within the same provider's own slot does not clash with itself
    new_appt = reschedule_appointment(reception, appt, scheduled_start=start + timedelta(minutes=15),
                                      scheduled_end=end + timedelta(minutes=15))
    appt.refresh_from_db()
    assert appt.status == 'rescheduled'
    assert new_appt.status == 'booked'
    assert new_appt.rescheduled_from == appt
    assert new_appt.notes == 'first visit'
    assert new_appt.provider == clinician

    with pytest.raises(ConflictError):
        reschedule_appointment(reception, appt, scheduled_start=start, scheduled_end=end)


def test_list_filters(reception, clinician, clinic, make_patient, slot):
    start, end = slot
    a = _book(reception, clinic, make_patient(), clinician, start, end)
    b = _book(reception, clinic, make_patient(), None, start, end)
    change_appointment_status(reception, b, 'confirmed')
    assert list(list_appointments(provider_id=clinician.id)) == [a]
    assert list(list_appointments(status='confirmed')) == [b]
    assert set(list_appointments(date=timezone.localtime(start).date())) == {a, b}
