"""
Views for the deals app.

Every endpoint requires the TRANSACTION_HISTORY permission.
"""

import logging

from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import TRANSACTION_HISTORY, require_permissions
from korx.responses import error_response
from services import BusinessRuleError

from .models import Deal
from .serializers import DealCreateSerializer, DealSerializer
from .services import close_deal

logger = logging.getLogger(__name__)


class DealViewSet(viewsets.GenericViewSet):
    """
    API endpoint for deals.

    Supports:
    - List the caller's deals (as agent), newest first
    - Retrieve a deal; non-admins only see their own
    - Create a completed SALE or RENT deal
    """

    serializer_class = DealSerializer
    permission_classes = [IsAuthenticated, require_permissions(TRANSACTION_HISTORY)]
    filter_backends = []
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        return Deal.objects.select_related('property', 'seller', 'buyer', 'agent')

    def list(self, request, *args, **kwargs):
        deals = self.get_queryset().filter(agent=request.user)
        return Response(self.get_serializer(deals, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        deal = self.get_queryset().filter(pk=kwargs['pk']).first()
        if deal is None or not (request.user.is_admin_role or deal.agent_id == request.user.id):
            return error_response('Deal not found', status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(deal).data)

    def create(self, request, *args, **kwargs):
        serializer = DealCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'errors': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            deal = close_deal(
                request.user,
                property_id=data['property_id'],
                deal_type=data['deal_type'],
                buyer_id=data['buyer_person_id'],
                seller_id=data.get('seller_person_id'),
                price=data.get('price'),
                start_date=data.get('start_date'),
                end_date=data.get('end_date'),
                notes=data.get('notes'),
            )
        except BusinessRuleError as e:
            logger.info(f"Deal rejected for user {request.user.id}: {e.message}")
            return error_response(e.message, e.status_code)

        return Response(
            {'message': f"{deal.deal_type} deal created successfully", 'deal_id': deal.id},
            status=status.HTTP_201_CREATED
        )
