"""
Views for the people app.

Endpoints:
- /api/persons/              list (search, 20 rows) and create
- /api/persons/{id}/         detail, partial update, delete
- /api/persons/agents/list/  users who can be assigned as agents
- /api/profile/              the signed-in user's own person record
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Prefetch, Q
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.models import ROLE_ADMIN, ROLE_AGENT
from accounts.serializers import UserSummarySerializer
from korx.responses import error_response, first_error
from properties.models import Property
from services.uploads import save_upload

from .models import Person
from .serializers import PersonBriefSerializer, PersonSerializer, PersonWriteSerializer

logger = logging.getLogger(__name__)

User = get_user_model()

PERSON_LIST_LIMIT = 20


def find_conflict(national_id=None, phone=None, exclude_id=None):
    """
    Return an error Response if another person already uses the id or phone.
    """
    others = Person.objects.all()
    if exclude_id is not None:
        others = others.exclude(pk=exclude_id)

    if national_id:
        existing = others.filter(national_id=national_id).first()
        if existing:
            return error_response(
                'Person with this National ID already exists.',
                code='DUPLICATE_NATIONAL_ID',
                person={'id': existing.id, 'full_name': existing.full_name},
            )

    if phone:
        existing = others.filter(phone=phone).first()
        if existing:
            return error_response(
                'Person with this phone already exists',
                person=PersonBriefSerializer(existing).data,
            )
    return None


# =============================================================================
# PERSON VIEWSET
# =============================================================================

class PersonViewSet(viewsets.ModelViewSet):
    """
    API endpoint for people (owners, sellers, buyers).

    All actions require authentication. ``?search=`` matches name, phone
    or email; lists are capped at 20 rows.
    """

    serializer_class = PersonSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = []
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        return Person.objects.select_related('user').prefetch_related(
            Prefetch('owned_properties', queryset=Property.objects.listings())
        )

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(full_name__icontains=search)
                | Q(phone__icontains=search)
                | Q(email__icontains=search)
            )
        serializer = self.get_serializer(queryset[:PERSON_LIST_LIMIT], many=True)
        return Response(serializer.data)

    def retrieve(self, request, *args, **kwargs):
        person = self.get_queryset().filter(pk=kwargs['pk']).first()
        if person is None:
            return error_response('Person not found', status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(person).data)

    def create(self, request, *args, **kwargs):
        serializer = PersonWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors), errors=serializer.errors)

        data = serializer.validated_data
        conflict = find_conflict(data.get('national_id'), data.get('phone'))
        if conflict:
            return conflict

        id_card = request.FILES.get('id_card')
        if id_card:
            data['id_card_path'] = save_upload(id_card)

        person = Person.objects.create(**data)
        logger.info(f"Person {person.id} created by user {request.user.id}")
        return Response(self.get_serializer(person).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        person = Person.objects.filter(pk=kwargs['pk']).first()
        if person is None:
            return error_response('Person not found', status.HTTP_404_NOT_FOUND)

        serializer = PersonWriteSerializer(person, data=request.data, partial=True)
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors), errors=serializer.errors)

        data = serializer.validated_data
        conflict = find_conflict(data.get('national_id'), data.get('phone'), exclude_id=person.id)
        if conflict:
            return conflict

        for field_name, value in data.items():
            setattr(person, field_name, value)

        id_card = request.FILES.get('id_card')
        if id_card:
            person.id_card_path = save_upload(id_card)

        person.save()
        return Response(self.get_serializer(self.get_queryset().get(pk=person.pk)).data)

    def destroy(self, request, *args, **kwargs):
        person = Person.objects.filter(pk=kwargs['pk']).first()
        if person is None:
            return error_response('Person not found', status.HTTP_404_NOT_FOUND)

        if person.owned_properties.exists():
            return error_response('Cannot delete person who owns properties.')

        person.delete()
        return Response({'message': 'Person deleted successfully'})

    @action(detail=False, methods=['get'], url_path='agents/list')
    def agents(self, request):
        """Users who can be assigned to a listing as its agent."""
        agents = User.objects.filter(role__in=[ROLE_AGENT, ROLE_ADMIN]).order_by('full_name')
        return Response(UserSummarySerializer(agents, many=True).data)


# =============================================================================
# PROFILE
# =============================================================================

def user_profile_fields(user):
    return {
        'full_name': user.full_name,
        'phone': user.phone,
        'email': user.email,
        'national_id': user.national_id,
        'address': user.address,
        'profile_picture': user.profile_picture,
    }


def profile_payload(person, user):
    """Person fields when one is linked, else the user's own; plus a ``User`` summary."""
    if person:
        payload = dict(PersonSerializer(person).data)
        payload['profile_picture'] = user.profile_picture
    else:
        payload = user_profile_fields(user)
    payload['User'] = {
        'user_id': user.id,
        'username': user.username,
        'role': user.role,
        'profile_picture': user.profile_picture,
    }
    return payload


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile(request):
    """
    The signed-in user's profile.

    GET returns the linked person, or the user's own fields when no person
    is linked yet. PUT creates the person if needed, updates it and copies
    non-empty values back onto the user.
    """
    user = request.user
    person = Person.objects.filter(user=user).first()

    if request.method == 'GET':
        return Response(profile_payload(person, user))

    serializer = PersonWriteSerializer(person, data=request.data, partial=True)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors), errors=serializer.errors)
    data = serializer.validated_data

    conflict = find_conflict(data.get('national_id'), None, exclude_id=person.id if person else None)
    if conflict:
        return conflict

    try:
        with transaction.atomic():
            if person is None:
                person = Person(user=user, full_name=data.get('full_name') or user.full_name or user.username)
            for field_name, value in data.items():
                setattr(person, field_name, value)
            if not person.email:
                person.email = user.email or None
            person.save()

            for field_name in ['full_name', 'phone', 'email', 'address']:
                if data.get(field_name):
                    setattr(user, field_name, data[field_name])
            if 'national_id' in data:
                user.national_id = data['national_id']

            picture = request.FILES.get('profile_picture')
            if picture:
                user.profile_picture = save_upload(picture)
            user.save()
    except IntegrityError as e:
        logger.warning(f"Profile update conflict for user {user.id}: {e}")
        return Response(
            {
                'error': 'Validation error: value already exists.',
                'message': 'Phone or email is already in use by another account.',
            },
            status=status.HTTP_400_BAD_REQUEST
        )

    return Response(profile_payload(person, user))
