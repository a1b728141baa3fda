from .base import BaseSource, SourceError
from .list_items import ListItemsSource
from .notice_api import NoticeApiSource
from .table_rows import TableRowsSource

__all__ = [
    "BaseSource",
    "SourceError",
    "ListItemsSource",
    "NoticeApiSource",
    "TableRowsSource",
]
