"""
Location taxonomy for KorX: Province → District → Area.

Deleting a province removes its districts and their areas.
"""

from django.db import models


class Province(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        db_table = 'provinces'
        ordering = ['name']

    def __str__(self):
        return self.name


class District(models.Model):
    province = models.ForeignKey(
        Province,
        on_delete=models.CASCADE,
        related_name='districts'
    )
    name = models.CharField(max_length=100)

    class Meta:
        db_table = 'districts'
        ordering = ['name']

        constraints = [
            models.UniqueConstraint(
                fields=['province', 'name'],
                name='unique_district_per_province'
            )
        ]

    def __str__(self):
        return f"{self.name}, {self.province.name}"


class Area(models.Model):
    district = models.ForeignKey(
        District,
        on_delete=models.CASCADE,
        related_name='areas'
    )
    name = models.CharField(max_length=100)

    class Meta:
        db_table = 'areas'
        ordering = ['name']

        constraints = [
            models.UniqueConstraint(
                fields=['district', 'name'],
                name='unique_area_per_district'
            )
        ]

    def __str__(self):
        return self.name
