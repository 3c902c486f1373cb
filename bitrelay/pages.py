"""HTML for the monitor page lookup, the /test diagnostics page and 404s."""

from __future__ import annotations

import html
import os
from datetime import datetime
from typing import Iterable, List, Optional

from bitrelay.codec import BIT_COUNT

# bit meanings on the reference hardware, for the diagnostics page only
BIT_LEGEND = (
    (1, "BIT0 (launcher ready)"),
    (2, "BIT1 (vibrator ready / LED on)"),
    (4, "BIT2 (medium vibration)"),
    (8, "BIT3 (strong vibration)"),
    (32, "BIT5 (rocker switch)"),
)


def find_page(static_dir: str, candidates: Iterable[str]) -> Optional[str]:
    """Path of the first candidate file that exists in ``static_dir``."""
    for name in candidates:
        path = os.path.join(static_dir, name)
        if os.path.isfile(path):
            return path
    return None


def missing_page(static_dir: str, candidates: Iterable[str]) -> str:
    try:
        files: List[str] = sorted(os.listdir(static_dir))
    except OSError as e:
        return f"<h1>Monitor page not found</h1><p>Cannot read directory: {html.escape(str(e))}</p>"
    html_files = [f for f in files if f.endswith(".html")]

    def esc(items):
        return html.escape(", ".join(items)) if items else "none"

    return (
        "<h1>Monitor page not found</h1>"
        f"<p>Looked for: {esc(list(candidates))}</p>"
        f"<p>HTML files in directory: {esc(html_files)}</p>"
        f"<p>All files: {esc(files)}</p>"
        "<hr>"
        '<p><a href="/test">Open the test page</a></p>'
    )


def test_page(port: int, device_connected: bool, monitor_count: int, host: str = "localhost") -> str:
    legend = "\n".join(f"<li><strong>{v}</strong> = {html.escape(text)}</li>" for v, text in BIT_LEGEND)
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>Bit relay test page</title>
  <style>
    body {{ font-family: monospace; background: #1a1a1a; color: #00ff00; padding: 20px; }}
    .container {{ max-width: 800px; margin: 0 auto; }}
    .status {{ background: #2a2a2a; padding: 10px; margin: 10px 0; border-left: 4px solid #00ff00; }}
    .info {{ color: #00aaff; }}
    .warning {{ color: #ff6600; }}
    a {{ color: #00ff00; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>Bit relay test page</h1>
    <div class="status">
      <h3>Server</h3>
      <p class="info">WebSocket port: {port}</p>
      <p class="info">Server time: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>
    </div>
    <div class="status">
      <h3>Number format ({BIT_COUNT} bits)</h3>
      <ul>
{legend}
      </ul>
      <p class="warning">Example: 34 = BIT1 + BIT5 (LED on + switch pressed)</p>
    </div>
    <div class="status">
      <h3>Connections</h3>
      <p>Device: {"connected" if device_connected else "not connected"}</p>
      <p>Web clients: {monitor_count}</p>
      <p>WebSocket URL: ws://{html.escape(host)}:{port}/</p>
    </div>
  </div>
</body>
</html>
"""


def not_found_page(path: str) -> str:
    return (
        "<h1>404 - Page not found</h1>"
        f"<p>Requested path: {html.escape(path)}</p>"
        '<p><a href="/">Home</a> | <a href="/test">Test page</a></p>'
    )
