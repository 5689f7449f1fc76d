"""
Embed code generator.

Two snippets per widget, both pure string templates:
- script: a container div plus an inline bootstrap that injects the loader
  script once and calls ``window.ReviewHub.initWidget``
- iframe: points at the public embed route
"""

import html
from dataclasses import dataclass

LOADER_PATH = "/widget.js"
EMBED_PATH = "/embed/widget/{widget_id}"

SCRIPT_TEMPLATE = """<!-- ReviewHub Widget (Widget ID: {widget_id}) -->
<div id="{container_id}"></div>
<script>
  (function() {{
    var el = document.getElementById('{container_id}');
    if (!el) {{ console.warn('ReviewHub: container for widget {widget_id} not found.'); return; }}
    var script = document.createElement('script');
    script.src = '{loader_url}';
    script.async = true;
    script.onload = function() {{
      if (window.ReviewHub && typeof window.ReviewHub.initWidget === 'function') {{
        window.ReviewHub.initWidget({{ containerId: '{container_id}', widgetId: '{widget_id}' }});
      }} else {{
        console.error('ReviewHub: loader script did not expose initWidget.');
      }}
    }};
    script.onerror = function() {{ console.error('ReviewHub: failed to load the widget loader.'); }};
    document.head.appendChild(script);
  }})();
</script>
<!-- End ReviewHub Widget -->"""

IFRAME_TEMPLATE = """<!-- ReviewHub Widget (Widget ID: {widget_id}) -->
<iframe
  src="{embed_url}"
  style="width: 100%; min-height: 400px; border: none; overflow: hidden;"
  title="{title}"
  loading="lazy"
  frameborder="0"
></iframe>
<!-- End ReviewHub Widget -->"""


def container_id(widget_id: str) -> str:
    return f"reviewhub-widget-{widget_id}"


def loader_url(base_url: str) -> str:
    return base_url.rstrip("/") + LOADER_PATH


def embed_url(base_url: str, widget_id: str) -> str:
    return base_url.rstrip("/") + EMBED_PATH.format(widget_id=widget_id)


def script_snippet(widget_id: str, base_url: str) -> str:
    return SCRIPT_TEMPLATE.format(
        widget_id=widget_id,
        container_id=container_id(widget_id),
        loader_url=loader_url(base_url),
    )


def iframe_snippet(widget_id: str, base_url: str, name: str = "") -> str:
    return IFRAME_TEMPLATE.format(
        widget_id=widget_id,
        embed_url=embed_url(base_url, widget_id),
        title=html.escape(name or "Review Widget", quote=True),
    )


@dataclass(frozen=True)
class EmbedCode:
    widget_id: str
    script: str
    iframe: str

    @classmethod
    def for_widget(cls, widget_id: str, base_url: str, name: str = "") -> "EmbedCode":
        return cls(
            widget_id=widget_id,
            script=script_snippet(widget_id, base_url),
            iframe=iframe_snippet(widget_id, base_url, name),
        )

    def to_json(self) -> dict:
        return {"widgetId": self.widget_id, "javascript": self.script, "iframe": self.iframe}
