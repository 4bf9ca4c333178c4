from django.db import migrations, models
import django.utils.timezone

import panels.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Panel',
            fields=[
                ('id', models.CharField(default=panels.models._panel_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('visualizations', models.JSONField(blank=True, default=list)),
                ('time_range', models.JSONField(blank=True, default=panels.models.default_time_range)),
                ('query_filter', models.JSONField(blank=True, default=panels.models.default_query_filter)),
                ('refresh_config', models.JSONField(blank=True, default=panels.models.default_refresh_config)),
                ('date_created', models.DateTimeField(default=django.utils.timezone.now)),
                ('date_modified', models.DateTimeField(default=django.utils.timezone.now)),
            ],
        ),
        migrations.CreateModel(
            name='SavedVisualization',
            fields=[
                ('id', models.CharField(default=panels.models._panel_id, max_length=64, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('query', models.TextField()),
                ('type', models.CharField(max_length=50)),
                ('time_field', models.CharField(blank=True, default='', max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('selected_date_range', models.JSONField(blank=True, default=dict)),
                ('selected_fields', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
    ]
