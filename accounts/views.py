"""
Authentication and public user views.

Auth endpoints (/api/auth/):
- register/, login/, logout/, me/
- forgot-password/, verify-reset-code/, reset-password/
- token/refresh/ (simplejwt, wired in urls.py)

Public user endpoints (/api/public/users/):
- agents/list/, listers/list/, {id}/

Auth endpoints answer with ``{"message": ...}`` bodies, which is what
the mobile client displays.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from korx.responses import error_response, first_error, message_response
from properties.models import Property
from services import ServiceIntegrationError
from services.business_logic import generate_otp_code, mask_email
from services.mailer import send_password_reset_code

from .authentication import issue_tokens, set_token_cookie
from .models import ROLE_AGENT, PasswordResetCode
from .serializers import PublicProfileSerializer, RegisterSerializer, UserSerializer

logger = logging.getLogger(__name__)

User = get_user_model()

MIN_PASSWORD_LENGTH = 6


def find_by_identifier(identifier):
    """Look a user up by phone number or username."""
    if not identifier:
        return None
    return User.objects.filter(Q(phone=identifier) | Q(username=identifier)).first()


def session_payload(user, access, refresh):
    return {
        'user_id': user.id,
        'username': user.username,
        'email': user.email,
        'full_name': user.full_name,
        'role': user.role,
        'permissions': user.get_permission_keys(),
        'token': access,
        'refresh': refresh,
    }


# =============================================================================
# REGISTRATION AND LOGIN
# =============================================================================

@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Create a plain user account and sign it in."""
    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        return message_response(first_error(serializer.errors), status.HTTP_400_BAD_REQUEST)

    user = serializer.save()
    logger.info(f"User {user.id} registered with username {user.username}")

    access, refresh = issue_tokens(user)
    response = Response(session_payload(user, access, refresh), status=status.HTTP_201_CREATED)
    return set_token_cookie(response, access)


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """
    Sign in with a phone number (or username) and password.

    Wrong credentials and unknown users get the same 401.
    """
    identifier = request.data.get('phone')
    password = request.data.get('password')
    if not identifier or not password:
        return message_response('Phone number and password are required', status.HTTP_400_BAD_REQUEST)

    user = find_by_identifier(identifier)
    if user is None or not user.check_password(password):
        logger.info(f"Failed login attempt for {identifier}")
        return message_response('Invalid credentials', status.HTTP_401_UNAUTHORIZED)

    if not user.is_active:
        return message_response('Account is inactive. Please contact support.', status.HTTP_403_FORBIDDEN)

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])

    access, refresh = issue_tokens(user)
    response = Response(session_payload(user, access, refresh))
    return set_token_cookie(response, access)


@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    response = message_response('Logged out successfully')
    response.delete_cookie(settings.JWT_COOKIE_NAME, samesite='Lax')
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(UserSerializer(request.user).data)


# =============================================================================
# PASSWORD RESET
# =============================================================================

class PasswordResetView(APIView):
    """Base for the unauthenticated, rate limited password reset steps."""

    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'password_reset'

    def latest_valid_code(self, user, otp):
        return PasswordResetCode.objects.filter(
            user=user,
            otp=otp,
            used=False,
            expires_at__gt=timezone.now(),
        ).first()


class ForgotPasswordView(PasswordResetView):
    """
    Two step start of the reset flow.

    Step 1 (no ``email``): return the masked address on file.
    Step 2 (``email`` matches): store and send a six digit code.
    """

    def post(self, request):
        identifier = request.data.get('identifier')
        email = request.data.get('email')

        if not identifier:
            return message_response('Phone or username is required', status.HTTP_400_BAD_REQUEST)

        user = find_by_identifier(identifier)
        if user is None:
            return message_response('User not found', status.HTTP_404_NOT_FOUND)
        if not user.is_active:
            return message_response('User account is inactive', status.HTTP_400_BAD_REQUEST)
        if not user.email:
            return message_response(
                'This account does not have an email registered. Please contact an administrator.',
                status.HTTP_400_BAD_REQUEST
            )

        if not email:
            return Response({'user_id': user.id, 'maskedEmail': mask_email(user.email)})

        if email.strip().lower() != user.email.lower():
            return message_response(
                'The email does not match the one registered with this account.',
                status.HTTP_400_BAD_REQUEST
            )

        code = PasswordResetCode.objects.create(
            user=user,
            otp=generate_otp_code(),
            expires_at=timezone.now() + timedelta(minutes=settings.PASSWORD_RESET_CODE_TTL_MINUTES),
        )

        try:
            send_password_reset_code(user, code.otp)
        except ServiceIntegrationError:
            return message_response(
                'Error sending email. Please check your SMTP settings.',
                status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        return message_response('OTP sent to your email')


class VerifyResetCodeView(PasswordResetView):

    def post(self, request):
        user = find_by_identifier(request.data.get('identifier'))
        if user is None:
            return message_response('User not found', status.HTTP_404_NOT_FOUND)

        otp = request.data.get('otp')
        if self.latest_valid_code(user, otp):
            return message_response('Code verified successfully')

        latest = PasswordResetCode.objects.filter(user=user, otp=otp).first()
        if latest is not None and latest.is_expired:
            return message_response('Code expired', status.HTTP_400_BAD_REQUEST)
        return message_response('Invalid code', status.HTTP_400_BAD_REQUEST)


class ResetPasswordView(PasswordResetView):

    def post(self, request):
        new_password = request.data.get('newPassword') or ''
        if len(new_password) < MIN_PASSWORD_LENGTH:
            return message_response('Password must be at least 6 characters long.', status.HTTP_400_BAD_REQUEST)

        user = find_by_identifier(request.data.get('identifier'))
        if user is None:
            return message_response('User not found', status.HTTP_404_NOT_FOUND)

        code = self.latest_valid_code(user, request.data.get('otp'))
        if code is None:
            return message_response('Invalid or expired code', status.HTTP_400_BAD_REQUEST)

        user.set_password(new_password)
        user.save(update_fields=['password', 'updated_at'])
        code.used = True
        code.save(update_fields=['used', 'updated_at'])

        logger.info(f"Password reset completed for user {user.id}")
        return message_response('Your password has been reset successfully. Please log in.')


# =============================================================================
# PUBLIC USER PROFILES
# =============================================================================

@api_view(['GET'])
@permission_classes([AllowAny])
def public_agents(request):
    agents = User.objects.filter(role=ROLE_AGENT).order_by('full_name')
    return Response(PublicProfileSerializer(agents, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def public_listers(request):
    """Users who created at least one listing currently offered for sale or rent."""
    lister_ids = (
        Property.objects.listings()
        .available()
        .filter(created_by__isnull=False)
        .values('created_by')
    )
    listers = User.objects.filter(pk__in=lister_ids).order_by('full_name')
    return Response(PublicProfileSerializer(listers, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def public_profile(request, pk):
    user = User.objects.filter(pk=pk).first()
    if user is None:
        return error_response('User not found', status.HTTP_404_NOT_FOUND)
    return Response(PublicProfileSerializer(user).data)
