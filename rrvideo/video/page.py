from __future__ import annotations
import asyncio
import json
import logging
from typing import Any, Dict, Generator, List

from zendriver import cdp

from ..events import Event
from .config import TransformConfig, vcfg
from .viewport import Viewport

_PLAYER_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>rrweb Player</title>
    <link rel="stylesheet" href="{style_url}" />
    <style>html, body {{padding: 0; border: none; margin: 0; overflow: hidden;}}</style>
    <script type="application/json" id="rrvideo-events">{events}</script>
    <script type="application/json" id="rrvideo-props">{props}</script>
    <script src="{script_url}"></script>
  </head>
  <body></body>
  <script>
    (function () {{
      function readJson(id) {{
        return JSON.parse(document.getElementById(id).textContent);
      }}
      function start() {{
        var props = readJson('rrvideo-props');
        props.events = readJson('rrvideo-events');
        var player = new rrwebPlayer({{ target: document.body, props: props }});
        player.addEventListener('finish', function () {{
          window[{finish_binding}]('');
        }});
        player.addEventListener('ui-update-progress', function (event) {{
          window[{progress_binding}](JSON.stringify(event.payload));
        }});
        var wrapper = document.querySelector('.replayer-wrapper');
        if (wrapper) {{
          wrapper.style.transform = 'none';
        }}
      }}
      if (document.readyState === 'loading') {{
        document.addEventListener('DOMContentLoaded', start);
      }} else {{
        start();
      }}
    }})();
  </script>
</html>
"""

_SET_CONTENT_JS = "document.open(); document.write({html}); document.close(); true"


def embed_json(value: Any) -> str:
    """JSON text safe to place inside a <script> element.

    ``</`` would let the HTML parser close the script block early; ``<\\/``
    is the same string once parsed as JSON.
    """
    return json.dumps(value).replace("</", "<\\/")


def player_props(config: TransformConfig, viewport: Viewport) -> Dict[str, Any]:
    """rrweb-player props: user options over defaults, sized to the capture viewport."""
    props = dict(config.player)
    props["width"] = viewport.width
    props["height"] = viewport.height
    return props


def build_player_html(
    events: List[Event], viewport: Viewport, config: TransformConfig
) -> str:
    """Self-contained page that replays ``events`` and reports back through the bridge."""
    return _PLAYER_TEMPLATE.format(
        style_url=config.player_style_url,
        script_url=config.player_script_url,
        events=embed_json(events),
        props=embed_json(player_props(config, viewport)),
        finish_binding=json.dumps(vcfg.FINISH_BINDING),
        progress_binding=json.dumps(vcfg.PROGRESS_BINDING),
    )


async def send_cdp(
    page,
    command: Generator[Any, Any, Any],
    *,
    label: str,
    timeout: float = vcfg.CDP_SEND_TIMEOUT_S,
) -> Any:
    """Send a CDP command; raise if it fails or stalls beyond ``timeout``."""
    try:
        return await asyncio.wait_for(page.send(command), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise TimeoutError(f"CDP {label} stalled >{timeout:.1f}s") from exc


async def send_cdp_best_effort(
    page,
    command: Generator[Any, Any, Any],
    *,
    label: str,
    timeout: float = vcfg.CDP_SEND_TIMEOUT_S,
) -> None:
    """Send a CDP command during teardown; failures are logged and skipped."""
    try:
        await send_cdp(page, command, label=label, timeout=timeout)
    except Exception:
        logging.getLogger(__name__).warning(
            "CDP %s failed (skipped)", label, exc_info=True
        )


async def apply_viewport(page, viewport: Viewport) -> None:
    """Pin the page's layout viewport to the capture size at 1 device pixel per CSS pixel."""
    await send_cdp(
        page,
        cdp.emulation.set_device_metrics_override(
            width=viewport.width,
            height=viewport.height,
            device_scale_factor=1,
            mobile=False,
        ),
        label="setDeviceMetricsOverride",
    )


async def set_document_content(page, html: str) -> None:
    """Replace the current document with ``html``, the way setContent does it.

    The document is rewritten in place, so runtime bindings registered on
    the page stay reachable from the new content.
    """
    await page.evaluate(_SET_CONTENT_JS.format(html=json.dumps(html)))
