"""
Treatment sponsorship endpoints.

Listing and transparency reports are public.  Patients open treatments,
donors fund them.  Validation of amounts and all persistence happen in
:mod:`core.services.treatments`.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.permissions import IsDonor, IsPatient, ReadOnly
from core.serializers.treatments import DonationSerializer, TreatmentCreateSerializer
from core.services import treatments as svc


@api_view(['GET', 'POST'])
@permission_classes([ReadOnly | IsPatient])
def treatments_collection(request):
    if request.method == 'GET':
        return Response({'ok': True, 'treatments': svc.list_public_treatments()})

    s = TreatmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    t = svc.create_treatment(
        request.user,
        title=v['title'],
        description=v['description'],
        goal_amount=v['goal_amount'],
        category=v.get('category') or None,
        consent_given=v.get('consent_given', False),
    )
    return Response({'ok': True, 'treatment': svc.serialize_treatment(t)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsDonor])
def donate_view(request):
    s = DonationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    donation, t = svc.donate(
        request.user,
        v['treatment_id'],
        v['amount'],
        v.get('receipt_url') or None,
        is_anonymous=v.get('is_anonymous', False),
    )
    return Response({
        'ok': True,
        'donation': svc.serialize_donation(donation),
        'treatment': svc.serialize_treatment(t),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def transparency_view(request, treatment_id: int):
    report = svc.transparency_report(treatment_id)
    return Response({'ok': True, **report})
