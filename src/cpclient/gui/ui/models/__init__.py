"""Expose Qt models used by the GUI."""

from .list_sql_model import ListSqlModel, create_submodel
from .roles import Roles
from .table_list_model import TableListModel

__all__ = [
    "ListSqlModel",
    "Roles",
    "TableListModel",
    "create_submodel",
]
