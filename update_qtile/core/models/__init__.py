"""
Domain models — pydantic types for the update pipeline.

    from update_qtile.core.models import Action, Receipt, SelectorSet, Settings
"""

from update_qtile.core.models.action import Action, Receipt
from update_qtile.core.models.selectors import SelectorSet
from update_qtile.core.models.settings import Settings

__all__ = [
    "Action",
    "Receipt",
    "SelectorSet",
    "Settings",
]
