"""
Accessible Filter (WSGI middleware)

Wraps a WSGI application and rewrites its HTML responses with the
accessibility pipeline. Other responses stream through untouched.

Usage:
    from accessible_filter import AccessibleFilter

    application = AccessibleFilter(application, {
        'display-all-roles': 'false',
        'configuration': '/etc/myapp/a11y-rules.json',
    })

PasteDeploy:
    [filter:accessible]
    use = egg:accessible-filter
    display-all-roles = false
"""

import logging
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional
from wsgiref.util import request_uri

from .capture import ResponseCapture, content_charset
from .config import CONFIGURATION_PATH, PipelineConfiguration
from .pipeline import AccessibilityPipeline, RequestContext


logger = logging.getLogger(__name__)


def preferred_locale(accept_language: Optional[str]) -> Optional[str]:
    """
    Highest weighted language tag of an Accept-Language header.

    Returns:
        The tag, or None when the header names no concrete language
    """
    best, best_weight = None, -1.0
    for index, part in enumerate((accept_language or '').split(',')):
        tag, _, params = part.strip().partition(';')
        tag = tag.strip()
        if not tag or tag == '*':
            continue
        weight = 1.0
        params = params.strip()
        if params.startswith('q='):
            try:
                weight = float(params[2:])
            except ValueError:
                continue
        # Earlier entries win ties
        if weight > best_weight:
            best, best_weight = tag, weight
    return best if best_weight > 0 else None


class AccessibleFilter:
    """
    WSGI middleware running the accessibility pipeline over HTML responses.

    Toggles are resolved once, here; a bad value fails at startup.

    Args:
        app: The wrapped WSGI application
        settings: Deployment settings (toggle names -> "true"/"false",
            optionally "configuration" -> rules file)
        rules_path: Rules file, overrides the "configuration" setting
        pipeline: Pipeline to run, mostly for tests
        stylesheet_loader: Fetches linked stylesheets by URL for the CSS
            category; linked stylesheets are skipped without one

    Raises:
        ConfigurationError: For an invalid toggle value or rules file
    """

    def __init__(self, app: Callable, settings: Optional[Mapping[str, Any]] = None,
                 rules_path: Optional[str] = None,
                 pipeline: Optional[AccessibilityPipeline] = None,
                 stylesheet_loader: Optional[Callable[[str], str]] = None):
        self.app = app
        settings = dict(settings or {})
        if rules_path is None:
            rules_path = settings.get(CONFIGURATION_PATH) or None
        self.config = PipelineConfiguration.from_settings(settings, rules_path=rules_path)
        self.pipeline = pipeline or AccessibilityPipeline()
        self.stylesheet_loader = stylesheet_loader

        enabled = sum(1 for value in self.config.toggles.values() if value)
        logger.info(f"Accessible filter ready: {enabled}/{len(self.config.toggles)} toggles enabled"
                    + (f", rules from {rules_path}" if rules_path else ""))

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        capture = ResponseCapture(start_response)
        app_iter = self.app(environ, capture.start_response)
        return self._respond(environ, start_response, capture, app_iter)

    def _respond(self, environ: dict, start_response: Callable, capture: ResponseCapture,
                 app_iter: Iterable[bytes]) -> Iterator[bytes]:
        try:
            for chunk in app_iter:
                if capture.buffering:
                    capture.sink.write(chunk)
                elif chunk:
                    yield chunk
        finally:
            close = getattr(app_iter, 'close', None)
            if close is not None:
                close()

        if capture.buffering:
            yield self._rewrite(environ, start_response, capture)

    def _rewrite(self, environ: dict, start_response: Callable, capture: ResponseCapture) -> bytes:
        """Run the pipeline over the buffered body and send it to the server."""
        body = capture.sink.raw()
        headers = capture.headers
        charset = content_charset(capture.content_type)

        if body and environ.get('REQUEST_METHOD', 'GET') != 'HEAD':
            try:
                markup = capture.collected()
            except (UnicodeDecodeError, LookupError) as e:
                logger.warning(f"Cannot decode response as {charset}, forwarding it as is: {e}")
            else:
                converted = self.pipeline.run(markup, self._config_for(environ),
                                              self._context_for(environ))
                if converted is not markup:
                    body = converted.encode(charset, 'xmlcharrefreplace')
                    headers = [(name, value) for name, value in headers
                               if name.lower() != 'content-length']
                    headers.append(('Content-Length', str(len(body))))

        start_response(capture.status, headers, capture.exc_info)
        return body

    def _config_for(self, environ: dict) -> PipelineConfiguration:
        return self.config.with_locale(preferred_locale(environ.get('HTTP_ACCEPT_LANGUAGE')))

    def _context_for(self, environ: dict) -> RequestContext:
        return RequestContext(
            base_url=request_uri(environ),
            user_agent=environ.get('HTTP_USER_AGENT', ''),
            stylesheet_loader=self.stylesheet_loader,
        )


def filter_factory(global_conf: Mapping[str, Any], **local_conf) -> Callable:
    """PasteDeploy filter factory."""
    def accessible_filter(app: Callable) -> AccessibleFilter:
        return AccessibleFilter(app, local_conf)
    return accessible_filter
