from ._history_store import HistoryStore
from ._models import (
    CategoryProgress,
    GroupStatistics,
    HistoryRecord,
    ProgressCounter,
    SelectedProduct,
    StatisticsSnapshot,
)

__all__ = [
    'CategoryProgress',
    'GroupStatistics',
    'HistoryRecord',
    'HistoryStore',
    'ProgressCounter',
    'SelectedProduct',
    'StatisticsSnapshot',
]
