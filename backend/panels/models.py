from django.db import models
from django.utils import timezone
import uuid

# -----------------------------
# 中文注释：
# Panel 模型用于表示一个运维面板（Operational Panel）的文档：
# - `visualizations` 存放可视化列表（JSON），每项包含 id/title/query/type/timeField 与网格坐标 x,y,w,h
# - `time_range` / `query_filter` / `refresh_config` 为面板级别的时间窗口、PPL 过滤条件与自动刷新配置
# - 该模型只是文档存储的一种实现（见 stores.OrmPanelStore），不做并发控制（最后写入者获胜）
#
# SavedVisualization 为只读的已保存可视化目录，面板只读取它来生成新的可视化。
# -----------------------------


def _panel_id():
    return uuid.uuid4().hex


def default_time_range():
    return {'from': 'now-1d', 'to': 'now'}


def default_query_filter():
    return {'query': '', 'language': 'ppl'}


def default_refresh_config():
    return {'pause': True, 'value': 15}


class Panel(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=_panel_id, editable=False)
    name = models.CharField(max_length=200)
    visualizations = models.JSONField(default=list, blank=True)
    time_range = models.JSONField(default=default_time_range, blank=True)
    query_filter = models.JSONField(default=default_query_filter, blank=True)
    refresh_config = models.JSONField(default=default_refresh_config, blank=True)
    date_created = models.DateTimeField(default=timezone.now)
    date_modified = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.name} ({self.id})"


class SavedVisualization(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=_panel_id)
    name = models.CharField(max_length=200)
    query = models.TextField()
    type = models.CharField(max_length=50)
    # may be empty for visualizations that are not time based
    time_field = models.CharField(max_length=200, blank=True, default='')
    description = models.TextField(blank=True, default='')
    selected_date_range = models.JSONField(default=dict, blank=True)
    selected_fields = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.type})"
