from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.permissions import IsNGO, IsPatient, ReadOnly
from core.serializers.missions import MissionCreateSerializer, MissionJoinSerializer, MissionReviewSerializer
from core.services import missions as svc


@api_view(['GET', 'POST'])
@permission_classes([ReadOnly | IsNGO])
def missions_collection(request):
    if request.method == 'GET':
        return Response({'ok': True, 'missions': svc.list_upcoming(request.query_params.get('location'))})

    s = MissionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    m = svc.create_mission(request.user, **s.validated_data)
    return Response({'ok': True, 'mission': svc.serialize_mission(m)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsPatient])
def join_mission(request, mission_id: int):
    s = MissionJoinSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.request_join(request.user, mission_id, s.validated_data.get('notes'))
    return Response({'ok': True, 'requestId': r.id}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsNGO])
def mission_requests(request, mission_id: int):
    return Response({'ok': True, 'requests': svc.list_requests(request.user, mission_id)})


@api_view(['PUT'])
@permission_classes([IsNGO])
def review_mission_request(request, request_id: int):
    s = MissionReviewSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    r = svc.review_request(request.user, request_id, s.validated_data['status'])
    return Response({'ok': True, 'request': {'id': r.id, 'status': r.status}})
