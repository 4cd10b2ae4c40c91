"""
Views for the locations app.

Read-only, public endpoints used by the address pickers in the app:
- GET /api/locations/provinces/
- GET /api/locations/provinces/{id}/districts/
- GET /api/locations/districts/{id}/areas/
"""

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .models import Area, District, Province
from .serializers import AreaSerializer, DistrictSerializer, ProvinceSerializer


class ProvinceViewSet(viewsets.ReadOnlyModelViewSet):
    """Provinces ordered by name, with a nested districts listing."""

    queryset = Province.objects.all().order_by('name')
    serializer_class = ProvinceSerializer
    permission_classes = [AllowAny]
    authentication_classes = []
    filter_backends = []

    @action(detail=True, methods=['get'])
    def districts(self, request, pk=None):
        districts = District.objects.filter(province_id=pk).order_by('name')
        return Response(DistrictSerializer(districts, many=True).data)


class DistrictViewSet(viewsets.GenericViewSet):
    queryset = District.objects.all()
    permission_classes = [AllowAny]
    authentication_classes = []
    filter_backends = []

    @action(detail=True, methods=['get'])
    def areas(self, request, pk=None):
        areas = Area.objects.filter(district_id=pk).order_by('name')
        return Response(AreaSerializer(areas, many=True).data)
