"""
Account registration and credential checks.

Email is the login identifier; ``username`` is kept equal to the
lowercased email so Django's auth backends keep working unchanged.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from rest_framework_simplejwt.tokens import RefreshToken

from core.exceptions import ConflictError, ValidationError
from core.models import User
from core.services.audit import log_action

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = (User.ROLE_PATIENT, User.ROLE_DOCTOR, User.ROLE_DONOR, User.ROLE_NGO)


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'name': user.display_name,
        'email': user.email,
        'phone': user.phone,
        'role': user.role,
        'language': user.language,
        'verified': user.verified,
    }


def issue_tokens(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    return {'access': str(refresh.access_token), 'refresh': str(refresh)}


def register_user(*, name: str, email: str, password: str, role: str, phone: str='', language: str='ar', ip: Optional[str]=None) -> User:
    email = (email or '').strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise ConflictError('email is already registered', field='email')

    candidate = User(username=email, email=email, first_name=(name or '').strip(), role=role)
    try:
        validate_password(password, user=candidate)
    except DjangoValidationError as exc:
        raise ValidationError(' '.join(exc.messages), field='password')

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email,
                email=email,
                password=password,
                first_name=candidate.first_name,
                role=role,
                phone=phone or '',
                language=language or 'ar',
            )
    except IntegrityError as exc:
        # lost a race with a concurrent registration of the same email
        raise ConflictError('email is already registered', field='email') from exc

    log_action(user=user, action='register', object_type='user', object_id=user.id,
               detail={'role': role, 'ip': ip})
    logger.info("registered user %s with role %s", user.id, role)
    return user


def check_credentials(request, email: str, password: str) -> Optional[User]:
    """Return the active user for ``email``/``password`` or None."""
    email = (email or '').strip().lower()
    user = authenticate(request, username=email, password=password)
    ip = request.META.get('REMOTE_ADDR') if request is not None else None
    if user is None:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'email': email, 'ip': ip})
        logger.info("failed login for %s from %s", email, ip)
        return None
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    return user
