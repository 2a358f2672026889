"""Download and clipboard helpers for generated images."""

from __future__ import annotations

import base64
import binascii
import io
import json
import time

from PIL import Image, UnidentifiedImageError

DOWNLOAD_PREFIX = "keystroke-imagen"


class ImageActionError(ValueError):
    """The image payload cannot be saved or copied."""


def decode_png(b64_json: str) -> bytes:
    """Decode a base64 payload and return it as PNG bytes.

    Payloads in another format that Pillow can read are re-encoded to PNG.
    """
    try:
        raw = base64.b64decode(b64_json, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageActionError("Image payload is not valid base64") from exc
    if not raw:
        raise ImageActionError("Image payload is empty")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            if img.format == "PNG":
                img.verify()
                return raw
            buf = io.BytesIO()
            img.save(buf, format="PNG")
            return buf.getvalue()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ImageActionError("Image payload is not a readable image") from exc


def download_filename(now: float | None = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"{DOWNLOAD_PREFIX}-{millis}.png"


def clipboard_script(b64_png: str) -> str:
    """Browser snippet that writes the PNG to the clipboard as an image blob."""
    data_url = json.dumps(f"data:image/png;base64,{b64_png}")
    return f"""
<div id="copy-status" style="font-family: sans-serif; font-size: 0.8rem;"></div>
<script>
(async () => {{
  const status = document.getElementById("copy-status");
  try {{
    const blob = await fetch({data_url}).then((r) => r.blob());
    await navigator.clipboard.write([new ClipboardItem({{ [blob.type]: blob }})]);
    status.textContent = "Image copied to clipboard";
  }} catch (err) {{
    status.textContent = "Copy failed: your browser may not support this feature";
  }}
}})();
</script>
"""
