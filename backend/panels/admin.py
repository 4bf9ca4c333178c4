from django.contrib import admin
from .models import Panel, SavedVisualization


@admin.register(Panel)
class PanelAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'date_created', 'date_modified')
    search_fields = ('name',)
    readonly_fields = ('date_created', 'date_modified')


# the catalog is read-only for panels; entries are maintained here or via load_saved_visualizations
@admin.register(SavedVisualization)
class SavedVisualizationAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'type', 'time_field', 'created_at')
    search_fields = ('name', 'query')
