from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.serializers.mental_health import ChatMessageSerializer, ChatStartSerializer
from core.services import mental_health as svc


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def start_chat(request):
    s = ChatStartSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    chat = svc.start_chat(request.user, s.validated_data.get('topic'))
    return Response({'ok': True, 'chatId': chat.id, 'status': chat.status}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def chat_detail(request, chat_id: int):
    return Response({'ok': True, 'chat': svc.chat_detail(request.user, chat_id)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def post_message(request, chat_id: int):
    s = ChatMessageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    msg = svc.post_message(request.user, chat_id, s.validated_data['content'])
    return Response({'ok': True, 'messageId': msg.id}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def close_chat(request, chat_id: int):
    chat = svc.close_chat(request.user, chat_id)
    return Response({'ok': True, 'chatId': chat.id, 'status': chat.status})
