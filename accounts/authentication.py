"""JWT authentication that also accepts the login cookie."""

import logging

from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken

logger = logging.getLogger(__name__)


class CookieJWTAuthentication(JWTAuthentication):
    """
    Read the access token from ``Authorization: Bearer`` first, then from
    the ``jwt`` cookie set at login.
    """

    def authenticate(self, request):
        header = self.get_header(request)
        if header is not None:
            return super().authenticate(request)

        raw_token = request.COOKIES.get(settings.JWT_COOKIE_NAME)
        if not raw_token:
            return None

        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token


def issue_tokens(user):
    """
    Return ``(access, refresh)`` signed tokens for ``user``.

    The refresh token is what /api/auth/token/refresh/ accepts.
    """
    refresh = RefreshToken.for_user(user)
    return str(refresh.access_token), str(refresh)


def set_token_cookie(response, token):
    lifetime = settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME']
    response.set_cookie(
        settings.JWT_COOKIE_NAME,
        token,
        max_age=int(lifetime.total_seconds()),
        httponly=True,
        samesite='Lax',
        secure=getattr(settings, 'SESSION_COOKIE_SECURE', False),
    )
    return response
