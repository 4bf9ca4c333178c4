"""Load saved visualizations from a JSON file into the catalog.

Usage examples:
- python manage.py load_saved_visualizations saved.json

The file holds a list of objects (or `{"visualizations": [...]}`) with
`id`, `name`, `query`, `type` and optionally `timeField`, `description`,
`selected_date_range`, `selected_fields`. Entries are upserted by id.
"""

import json

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from panels.models import SavedVisualization


class Command(BaseCommand):
    help = "Upsert saved visualizations from a JSON file"

    def add_arguments(self, parser):
        parser.add_argument('path', help='JSON file with saved visualizations')

    def handle(self, *args, **options):
        path = options.get('path')
        try:
            with open(path, encoding='utf-8') as fh:
                payload = json.load(fh)
        except (OSError, ValueError) as e:
            raise CommandError(f'Cannot read {path}: {e}')

        entries = payload.get('visualizations', []) if isinstance(payload, dict) else payload
        if not isinstance(entries, list):
            raise CommandError('Expected a list of saved visualizations')

        created_count = updated_count = 0
        with transaction.atomic():
            for entry in entries:
                if not isinstance(entry, dict) or not entry.get('id') or not entry.get('query'):
                    raise CommandError(f'Invalid saved visualization entry: {entry!r}')
                time_field = entry.get('timeField', entry.get('time_field'))
                _, created = SavedVisualization.objects.update_or_create(
                    id=str(entry['id']),
                    defaults={
                        'name': entry.get('name') or entry['id'],
                        'query': entry['query'],
                        'type': entry.get('type') or 'bar',
                        'time_field': time_field or '',
                        'description': entry.get('description') or '',
                        'selected_date_range': entry.get('selected_date_range') or {},
                        'selected_fields': entry.get('selected_fields') or {},
                    },
                )
                if created:
                    created_count += 1
                else:
                    updated_count += 1
        self.stdout.write(self.style.SUCCESS(
            f'Loaded saved visualizations: created={created_count} updated={updated_count}'
        ))
