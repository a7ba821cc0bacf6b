"""
Accessible Filter

WSGI middleware that rewrites the HTML produced by a web application to be
more accessible, transparently to the application.

Features:
- Association of data cells with header cells and of labels with fields
- speak / speak-as CSS properties turned into markup
- Visible cues for alternative texts, cell headers, drag and drop,
  languages, link attributes, roles, titles, shortcuts and WAI-ARIA states
- Keyboard access to click, drag and drop and hover handlers
- WAI-ARIA marking of autocomplete, range, required and invalid fields
- Navigation by headings, skip links and links to long descriptions
- Optional stylesheet hiding the visual cues from sighted users
- All-or-nothing rewriting: on any failure the original page is served

Workflow:
1. Wrap the application: app = AccessibleFilter(app, settings)
2. HTML responses are buffered, rewritten and sent with a new Content-Length
3. Everything else streams through untouched
"""

__version__ = '1.0.0'

from .capture import (
    BufferingSink,
    PassThroughSink,
    ResponseCapture,
    is_markup_content_type,
)

from .config import (
    TOGGLES,
    AccessibleFilterError,
    ConfigurationError,
    PipelineConfiguration,
    RuleSet,
    Skipper,
    coerce_toggle,
)

from .pipeline import (
    AccessibilityPipeline,
    RequestContext,
    convert_html,
    convert_html_file,
)

from .middleware import (
    AccessibleFilter,
    filter_factory,
)

__all__ = [
    # Configuration
    'TOGGLES',
    'AccessibleFilterError',
    'ConfigurationError',
    'PipelineConfiguration',
    'RuleSet',
    'Skipper',
    'coerce_toggle',
    # Pipeline
    'AccessibilityPipeline',
    'RequestContext',
    'convert_html',
    'convert_html_file',
    # Response capture
    'BufferingSink',
    'PassThroughSink',
    'ResponseCapture',
    'is_markup_content_type',
    # WSGI
    'AccessibleFilter',
    'filter_factory',
]
