import pytest
from rest_framework.exceptions import NotFound, ValidationError

from emr.exceptions import ConflictError
from emr.models import Ticket
from emr.services.clinical import add_note, list_notes, serialize_note, triage_assessment
from emr.services.queueing import change_ticket_status, enqueue_patient

pytestmark = pytest.mark.django_db


def _triage_ticket(operator, patient, queue, priority='routine'):
    # skip the gate; payment is covered in test_patient_flow
    return enqueue_patient(operator, patient, queue, priority=priority, skip_payment_gate=True)


def test_add_and_list_notes(clinician, make_patient):
    patient = make_patient()
    add_note(clinician, patient, note_type='subjective', content='Headache for 3 days', tags=['neuro', ' '])
    note = add_note(clinician, patient, note_type='plan', content='<script>x</script>Paracetamol')
    assert note.content == 'xParacetamol'
    notes = list(list_notes(patient))
    assert [n.note_type for n in notes] == ['plan', 'subjective']
    assert notes[1].tags == ['neuro']
    assert serialize_note(notes[0])['authorName'] == 'Nora'
    assert len(list_notes(patient, limit=1)) == 1


def test_note_validation(clinician, make_patient):
    patient = make_patient()
    with pytest.raises(ValidationError):
        add_note(clinician, patient, note_type='subjective', content='   ')
    with pytest.raises(ValidationError):
        add_note(clinician, patient, note_type='gossip', content='hello')


def test_triage_assessment_moves_patient_to_doctor(clinician, make_patient, triage_queue, doctor_queue):
    patient = make_patient()
    ticket = _triage_ticket(clinician, patient, triage_queue, priority='stat')
    change_ticket_status(clinician, ticket, 'called')

    note, doctor_ticket = triage_assessment(clinician, ticket, chief_complaint='Chest pain',
                                            notes='BP 150/95')
    assert note.content == '**Chief Complaint:** Chest pain\n\n**Triage Notes:**\nBP 150/95'
    assert note.tags == ['triage', 'assessment']
    ticket.refresh_from_db()
    assert ticket.status == 'served'
    assert ticket.served_by == clinician
    assert doctor_ticket.queue == doctor_queue
    assert doctor_ticket.token_number == ticket.token_number
    assert doctor_ticket.priority == 'stat'
    assert doctor_ticket.notes == 'Transferred from triage. Chief complaint: Chest pain'
    assert Ticket.objects.filter(patient=patient, status='waiting').count() == 1


def test_triage_needs_chief_complaint(clinician, make_patient, triage_queue, doctor_queue):
    ticket = _triage_ticket(clinician, make_patient(), triage_queue)
    with pytest.raises(ValidationError):
        triage_assessment(clinician, ticket, chief_complaint='  ')


def test_triage_only_for_active_triage_tickets(clinician, make_patient, triage_queue, doctor_queue, lab_queue):
    lab_ticket = enqueue_patient(clinician, make_patient(), lab_queue)
    with pytest.raises(ConflictError):
        triage_assessment(clinician, lab_ticket, chief_complaint='Fever')

    ticket = _triage_ticket(clinician, make_patient(), triage_queue)
    change_ticket_status(clinician, ticket, 'no_show')
    with pytest.raises(ConflictError):
        triage_assessment(clinician, ticket, chief_complaint='Fever')


def test_triage_without_doctor_queue(clinician, make_patient, triage_queue):
    ticket = _triage_ticket(clinician, make_patient(), triage_queue)
    with pytest.raises(NotFound):
        triage_assessment(clinician, ticket, chief_complaint='Fever')
    ticket.refresh_from_db()
    assert ticket.status == 'waiting'
