from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsNGOOrAdmin, IsStockProvider
from core.serializers.medications import MedicationCreateSerializer, MedicationRequestSerializer
from core.services import medications as svc


@api_view(['GET'])
@permission_classes([AllowAny])
def available_medications(request):
    return Response({'ok': True, 'medications': svc.list_available()})


@api_view(['POST'])
@permission_classes([IsStockProvider])
def add_medication(request):
    s = MedicationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    m = svc.add_stock(request.user, **s.validated_data)
    return Response({'ok': True, 'medication': svc.serialize_medication(m)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def request_medication(request):
    s = MedicationRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.request_item(request.user, **s.validated_data)
    return Response({'ok': True, 'request': svc.serialize_request(r)}, status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsNGOOrAdmin])
def fulfill_medication_request(request, request_id: int):
    r = svc.fulfill_request(request.user, request_id)
    return Response({'ok': True, 'request': svc.serialize_request(r)})
