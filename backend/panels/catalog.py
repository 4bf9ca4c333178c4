"""Read-only access to saved visualizations."""

from typing import Dict, List

from django.db import DatabaseError

from .exceptions import NotFound, UpstreamFailure
from .models import SavedVisualization
from .serializers import SavedVisualizationSerializer


class SavedVisualizationCatalog:

    def list(self) -> List[Dict]:
        try:
            rows = SavedVisualization.objects.all().order_by('name')
            return [dict(SavedVisualizationSerializer(r).data) for r in rows]
        except DatabaseError as e:
            raise UpstreamFailure(str(e))

    def get(self, saved_id: str) -> Dict:
        try:
            row = SavedVisualization.objects.filter(id=saved_id).first()
        except DatabaseError as e:
            raise UpstreamFailure(str(e))
        if row is None:
            raise NotFound(f'Saved visualization {saved_id} not found')
        return dict(SavedVisualizationSerializer(row).data)
