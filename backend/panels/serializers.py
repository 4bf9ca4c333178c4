from rest_framework import serializers
from .models import Panel, SavedVisualization

# -----------------------------
# 中文注释：
# 该模块定义面板相关的序列化器：
# - `PanelSerializer` 把 Panel 模型转换为与前端约定的 camelCase 文档（dateCreated、timeRange 等）
# - `SavedVisualizationSerializer` 输出只读的已保存可视化目录条目（time_field 以 timeField 暴露）
# -----------------------------


class PanelSerializer(serializers.ModelSerializer):
    dateCreated = serializers.DateTimeField(source='date_created')
    dateModified = serializers.DateTimeField(source='date_modified')
    timeRange = serializers.JSONField(source='time_range')
    queryFilter = serializers.JSONField(source='query_filter')
    refreshConfig = serializers.JSONField(source='refresh_config')

    class Meta:
        model = Panel
        fields = ['id', 'name', 'dateCreated', 'dateModified', 'visualizations',
                  'timeRange', 'queryFilter', 'refreshConfig']


class SavedVisualizationSerializer(serializers.ModelSerializer):
    timeField = serializers.CharField(source='time_field', allow_blank=True)

    class Meta:
        model = SavedVisualization
        fields = ['id', 'name', 'query', 'type', 'timeField', 'description',
                  'selected_date_range', 'selected_fields']

