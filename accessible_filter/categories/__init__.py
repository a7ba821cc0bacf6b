"""
Transformation categories applied by the accessibility pipeline.
"""

from .association import AccessibleAssociation
from .css import AccessibleCSS, StyleSheetModel
from .display import AccessibleDisplay
from .event import AccessibleEvent
from .form import AccessibleForm
from .navigation import AccessibleNavigation

__all__ = [
    'AccessibleAssociation',
    'AccessibleCSS',
    'AccessibleDisplay',
    'AccessibleEvent',
    'AccessibleForm',
    'AccessibleNavigation',
    'StyleSheetModel',
]
