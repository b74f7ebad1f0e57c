"""Action dispatch — argument decoding, record selection and invocation."""

from sqla_adminkit.actions._dispatcher import (
    ActionDispatcher,
    available_actions,
    decode_argument,
    find_selected_records,
)

__all__ = [
    "ActionDispatcher",
    "available_actions",
    "decode_argument",
    "find_selected_records",
]
