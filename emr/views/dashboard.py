"""
Clinic dashboard.

Headline counts for the day: registrations, appointments, queue load
and takings.  Results are cached briefly; pass ``fresh=1`` to bypass.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsStaff
from ..services.reports import dashboard_stats


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def dashboard(request):
    fresh = request.query_params.get('fresh') == '1'
    return Response({'ok': True, 'data': dashboard_stats(use_cache=not fresh)})
