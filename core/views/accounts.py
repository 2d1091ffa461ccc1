"""
Account endpoints: registration, email login and JWT session handling.

Tokens are issued by ``rest_framework_simplejwt``; refresh tokens rotate
and are blacklisted on logout.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from core.exceptions import ValidationError
from core.models import User
from core.serializers.accounts import LoginSerializer, LogoutSerializer, RegisterSerializer
from core.services.accounts import SELF_SERVICE_ROLES, check_credentials, issue_tokens, register_user, serialize_user
from core.services.audit import log_action


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    if v['role'] not in SELF_SERVICE_ROLES:
        raise PermissionDenied('Administrator accounts cannot be self-registered.')

    user = register_user(
        name=v['name'],
        email=v['email'],
        password=v['password'],
        role=v['role'],
        phone=v.get('phone', ''),
        language=v.get('language') or 'ar',
        ip=request.META.get('REMOTE_ADDR'),
    )
    return Response({'ok': True, 'user': serialize_user(user), 'tokens': issue_tokens(user)},
                    status=status.HTTP_201_CREATED)

register_view.cls.throttle_scope = 'register'


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Email + password login.  Returns the user and a fresh token pair."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = check_credentials(request, s.validated_data['email'], s.validated_data['password'])
    if user is None:
        raise AuthenticationFailed('Invalid email or password.')
    return Response({'ok': True, 'user': serialize_user(user), 'tokens': issue_tokens(user)})

login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token (and rotated refresh token) from a refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if resp.status_code != 200:
        return resp
    return Response({'ok': True, 'tokens': dict(resp.data)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one for the user."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as exc:
            raise ValidationError(str(exc), field='refresh')
        if token.get('user_id') not in (request.user.id, str(request.user.id)):
            raise PermissionDenied('Refresh token belongs to another user.')
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user: User = request.user
    return Response({'ok': True, 'user': serialize_user(user)})
