"""HTTP API for operational panels.

All endpoints live under `/api/observability/operational_panels/` and take
JSON bodies. Failures come back as a plain-text message with the status of
the error (400 validation, 404 unknown id, upstream status or 500 otherwise).
"""

import functools
import logging
from collections.abc import Mapping

from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.exceptions import APIException
from rest_framework.response import Response

from ppl.service import PPLService

from .catalog import SavedVisualizationCatalog
from .exceptions import PanelsError, ValidationError
from .lifecycle import VisualizationLifecycle
from .repository import PanelRepository
from .stores import get_panel_store

logger = logging.getLogger(__name__)


def _repository() -> PanelRepository:
    return PanelRepository(get_panel_store())


def _lifecycle() -> VisualizationLifecycle:
    return VisualizationLifecycle(_repository())


def _body(request, *required):
    data = request.data
    if not isinstance(data, Mapping):
        raise ValidationError('request body must be a JSON object')
    missing = [k for k in required if data.get(k) is None]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")
    return data


def _plain_error(message, status_code):
    return HttpResponse(message, status=status_code, content_type='text/plain; charset=utf-8')


def panels_endpoint(description):
    """Turn PanelsError into a plain-text error response, logging it as `description`."""
    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except PanelsError as e:
                logger.error('Issue in %s: %s', description, e.message)
                return _plain_error(e.message, e.status_code)
            except APIException:
                # parse errors and friends keep DRF's own handling
                raise
            except Exception as e:
                logger.exception('Unexpected error in %s: %s', description, e)
                return _plain_error(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
        return wrapper
    return decorator


@api_view(['GET', 'POST'])
@panels_endpoint('panels collection')
def panels_collection(request):
    if request.method == 'GET':
        return Response({'panels': _repository().list()})
    data = _body(request, 'panelName')
    new_panel_id = _repository().create(data.get('panelName'))
    return Response({'message': 'Panel Created', 'newPanelId': new_panel_id})


@api_view(['GET', 'DELETE'])
@panels_endpoint('panel detail')
def panel_detail(request, panel_id):
    repository = _repository()
    if request.method == 'GET':
        return Response(repository.get(panel_id))
    repository.delete(panel_id)
    return Response({'message': 'Panel Deleted'}, status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@panels_endpoint('renaming panel')
def panel_rename(request):
    data = _body(request, 'panelId', 'panelName')
    _repository().rename(data.get('panelId'), data.get('panelName'))
    return Response({'message': 'Panel Renamed'})


@api_view(['POST'])
@panels_endpoint('cloning panel')
def panel_clone(request):
    data = _body(request, 'panelId', 'panelName')
    cloned = _repository().clone(data.get('panelId'), data.get('panelName'))
    return Response({
        'message': 'Panel Cloned',
        'clonePanelId': cloned['id'],
        'dateCreated': cloned['dateCreated'],
        'dateModified': cloned['dateModified'],
    })


@api_view(['PATCH'])
@panels_endpoint('adding query filter')
def panel_filter(request):
    data = _body(request, 'panelId', 'query', 'language', 'to', 'from')
    _repository().set_filter(
        data.get('panelId'),
        data.get('query'),
        data.get('language'),
        data.get('from'),
        data.get('to'),
    )
    return Response({'message': 'Panel PPL Filter Changed'})


@api_view(['GET', 'POST'])
@panels_endpoint('visualizations')
def visualizations_collection(request):
    if request.method == 'GET':
        return Response({'visualizations': SavedVisualizationCatalog().list()})
    data = _body(request, 'panelId')
    lifecycle = _lifecycle()
    if data.get('savedVisualizationId') is not None:
        saved = SavedVisualizationCatalog().get(data.get('savedVisualizationId'))
        visualizations = lifecycle.add_from_saved(data.get('panelId'), saved)
    else:
        data = _body(request, 'panelId', 'newVisualization')
        visualizations = lifecycle.add_new(data.get('panelId'), data.get('newVisualization'))
    return Response({'visualizations': visualizations})


@api_view(['POST'])
@panels_endpoint('replacing visualization')
def visualization_replace(request):
    data = _body(request, 'panelId', 'oldVisualizationId', 'newVisualization')
    visualizations = _lifecycle().replace(
        data.get('panelId'),
        data.get('oldVisualizationId'),
        data.get('newVisualization'),
    )
    return Response({'visualizations': visualizations})


@api_view(['POST'])
@panels_endpoint('cloning visualization')
def visualization_clone(request):
    data = _body(request, 'panelId', 'visualizationId')
    visualizations = _lifecycle().clone(data.get('panelId'), data.get('visualizationId'))
    return Response({'visualizations': visualizations})


@api_view(['PUT'])
@panels_endpoint('editing visualization layout')
def visualization_edit(request):
    data = _body(request, 'panelId', 'visualizationParams')
    params = data.get('visualizationParams')
    if not isinstance(params, list) or not all(isinstance(p, Mapping) for p in params):
        raise ValidationError('visualizationParams must be a list of layout objects')
    visualizations = _repository().update_layout(data.get('panelId'), params)
    return Response({'visualizations': visualizations})


@api_view(['DELETE'])
@panels_endpoint('removing visualization')
def visualization_remove(request, panel_id, visualization_id):
    visualizations = _lifecycle().remove(panel_id, visualization_id)
    return Response({'visualizations': visualizations})


@api_view(['GET'])
@panels_endpoint('running visualization query')
def visualization_data(request, panel_id, visualization_id):
    query = _lifecycle().visualization_query(panel_id, visualization_id)
    result = PPLService.from_settings().fetch(query)
    return Response({'query': query, **result})
