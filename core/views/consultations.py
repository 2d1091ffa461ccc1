from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsPatient
from core.serializers.consultations import ConsultationCreateSerializer, ConsultationStatusSerializer
from core.services import consultations as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def consultations_collection(request):
    if request.method == 'GET':
        return Response({'ok': True, 'consultations': svc.list_consultations(request.user)})

    if not IsPatient().has_permission(request, None):
        raise PermissionDenied(IsPatient.message)
    s = ConsultationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    c = svc.book_consultation(request.user, doctor_id=v['doctor_id'], scheduled_at=v['scheduled_at'], mode=v['mode'])
    return Response({'ok': True, 'consultation': svc.serialize_consultation(c, viewer=request.user)},
                    status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def consultation_status(request, consultation_id: int):
    s = ConsultationStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    c = svc.set_status(request.user, consultation_id, s.validated_data['status'])
    return Response({'ok': True, 'consultation': svc.serialize_consultation(c, viewer=request.user)})
