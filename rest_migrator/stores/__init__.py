"""List-model stores that migrations write into."""

from .base import ListModel, Page, StoreFactory
from .yaml_store import YAMLListModel
from .rest_store import RESTListModel

__all__ = [
    "ListModel",
    "Page",
    "StoreFactory",
    "YAMLListModel",
    "RESTListModel",
]
