from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import properties.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('locations', '0001_initial'),
        ('people', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Property',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('owner_name', models.CharField(blank=True, max_length=255, null=True)),
                ('property_code', models.CharField(blank=True, max_length=50, null=True, unique=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('inactive', 'Inactive'), ('under_deal', 'Under Deal')], default='active', max_length=20)),
                ('property_category', models.CharField(choices=[('tower', 'Tower'), ('market', 'Market'), ('sharak', 'Sharak'), ('apartment', 'Apartment'), ('normal', 'Normal')], default='normal', max_length=20)),
                ('record_kind', models.CharField(choices=[('container', 'Container'), ('listing', 'Listing')], default='listing', max_length=20)),
                ('property_type', models.CharField(blank=True, choices=[('house', 'House'), ('shop', 'Shop'), ('office', 'Office'), ('plot', 'Plot'), ('land', 'Land'), ('apartment', 'Apartment'), ('tower', 'Tower'), ('market', 'Market'), ('sharak', 'Sharak')], max_length=20, null=True)),
                ('title', models.CharField(blank=True, max_length=255, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('purpose', models.CharField(blank=True, choices=[('sale', 'Sale'), ('rent', 'Rent')], max_length=10, null=True)),
                ('sale_price', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('rent_price', models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ('address', models.TextField(blank=True, null=True)),
                ('city', models.CharField(blank=True, max_length=100, null=True)),
                ('latitude', models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ('area_size', models.CharField(blank=True, max_length=50, null=True)),
                ('bedrooms', models.IntegerField(blank=True, null=True)),
                ('bathrooms', models.IntegerField(blank=True, null=True)),
                ('facilities', models.JSONField(blank=True, null=True)),
                ('photos', models.JSONField(blank=True, default=list)),
                ('attachments', models.JSONField(blank=True, default=list)),
                ('videos', models.JSONField(blank=True, default=list)),
                ('is_available_for_sale', models.BooleanField(default=False)),
                ('is_available_for_rent', models.BooleanField(default=False)),
                ('is_parent', models.BooleanField(default=False)),
                ('unit_number', models.CharField(blank=True, max_length=50, null=True)),
                ('floor', models.CharField(blank=True, max_length=20, null=True)),
                ('total_floors', models.IntegerField(blank=True, null=True)),
                ('total_units', models.IntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('agent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='agent_properties', to=settings.AUTH_USER_MODEL)),
                ('area', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='properties', to='locations.area')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_properties', to=settings.AUTH_USER_MODEL)),
                ('district', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='properties', to='locations.district')),
                ('owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='owned_properties', to='people.person')),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='children', to='properties.property')),
                ('province', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='properties', to='locations.province')),
            ],
            options={
                'verbose_name_plural': 'Properties',
                'db_table': 'properties',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['record_kind', 'status'], name='properties_kind_status_idx'),
                    models.Index(fields=['property_category'], name='properties_category_idx'),
                    models.Index(fields=['created_at'], name='properties_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PropertyHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('change_type', models.CharField(choices=[('CREATED', 'Created'), ('TRANSFERRED_SALE', 'Transferred (Sale)'), ('RENTED', 'Rented')], max_length=20)),
                ('change_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('new_owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='new_ownerships', to='people.person')),
                ('previous_owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='previous_ownerships', to='people.person')),
                ('property', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='properties.property')),
            ],
            options={
                'verbose_name_plural': 'Property history',
                'db_table': 'property_history',
                'ordering': ['-change_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='NearbyCache',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entity_type', models.CharField(choices=[('PARENT_CONTAINER', 'Parent Container'), ('PROPERTY', 'Property')], max_length=20)),
                ('entity_id', models.PositiveBigIntegerField()),
                ('radius_m', models.PositiveIntegerField(default=1000)),
                ('types', models.JSONField(default=properties.models.default_nearby_types)),
                ('data_json', models.JSONField(default=dict)),
                ('expires_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'nearby_cache',
                'ordering': ['-updated_at'],
                'constraints': [models.UniqueConstraint(fields=('entity_type', 'entity_id'), name='unique_nearby_cache_entity')],
            },
        ),
    ]
