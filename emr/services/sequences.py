"""Monotonic counters backing MRNs and ticket tokens."""
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from emr.models import Sequence


@transaction.atomic
def next_value(key: str) -> int:
    """Increment and return the counter stored under ``key``.

    The row is locked for the rest of the surrounding transaction, so
    two concurrent callers never receive the same value.
    """
    seq = Sequence.objects.select_for_update().filter(key=key).first()
    if seq is None:
        try:
            with transaction.atomic():
                Sequence.objects.create(key=key, value=0)
        except IntegrityError:
            # created concurrently; fall through and lock it
            pass
        seq = Sequence.objects.select_for_update().get(key=key)
    seq.value += 1
    seq.save(update_fields=['value', 'updated_at'])
    return seq.value


def generate_mrn() -> str:
    year = timezone.localdate().year
    n = next_value(f"mrn:{year}")
    return f"{settings.CLINIC_MRN_PREFIX}{year}{n:06d}"


def generate_ticket_token(prefix: str = '') -> str:
    prefix = prefix or settings.CLINIC_TOKEN_PREFIX
    day = timezone.localdate().strftime('%Y%m%d')
    n = next_value(f"token:{prefix}:{day}")
    return f"{prefix}{n:03d}"
