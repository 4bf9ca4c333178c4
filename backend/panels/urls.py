from django.urls import path

from .views import (
    panel_clone,
    panel_detail,
    panel_filter,
    panel_rename,
    panels_collection,
    visualization_clone,
    visualization_data,
    visualization_edit,
    visualization_remove,
    visualization_replace,
    visualizations_collection,
)

# fixed paths first so they are not swallowed by panels/<panel_id>
urlpatterns = [
    path('panels', panels_collection, name='panels'),
    path('panels/rename', panel_rename, name='panel-rename'),
    path('panels/clone', panel_clone, name='panel-clone'),
    path('panels/filter', panel_filter, name='panel-filter'),
    path('panels/<str:panel_id>', panel_detail, name='panel-detail'),
    path('panels/<str:panel_id>/visualizations/<str:visualization_id>/data', visualization_data,
         name='visualization-data'),
    path('visualizations', visualizations_collection, name='visualizations'),
    path('visualizations/replace', visualization_replace, name='visualization-replace'),
    path('visualizations/clone', visualization_clone, name='visualization-clone'),
    path('visualizations/edit', visualization_edit, name='visualization-edit'),
    path('visualizations/<str:panel_id>/<str:visualization_id>', visualization_remove, name='visualization-remove'),
]
