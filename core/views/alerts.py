from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.permissions import IsAdminRole, ReadOnly
from core.serializers.alerts import AlertCreateSerializer
from core.services import alerts as svc


@api_view(['GET', 'POST'])
@permission_classes([ReadOnly | IsAdminRole])
def alerts_collection(request):
    if request.method == 'GET':
        return Response({'ok': True, 'alerts': svc.list_alerts(request.query_params.get('region'))})

    s = AlertCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    a = svc.publish_alert(request.user, **s.validated_data)
    return Response({'ok': True, 'alert': svc.serialize_alert(a)}, status=status.HTTP_201_CREATED)
