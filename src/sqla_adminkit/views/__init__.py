"""Views — ViewModels and the handlers that produce them."""

from sqla_adminkit.views._handlers import AdminHandlers, serialize_value
from sqla_adminkit.views._models import (
    ActionResult,
    ActionView,
    DeleteResult,
    FieldView,
    ListViewModel,
    MenuItem,
    RecordView,
    RecordViewModel,
    ResourceDescription,
    ScopeView,
    SearchState,
    SectionView,
)

__all__ = [
    "ActionResult",
    "ActionView",
    "AdminHandlers",
    "DeleteResult",
    "FieldView",
    "ListViewModel",
    "MenuItem",
    "RecordView",
    "RecordViewModel",
    "ResourceDescription",
    "ScopeView",
    "SearchState",
    "SectionView",
    "serialize_value",
]
