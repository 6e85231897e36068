import io
import json
from types import SimpleNamespace

from PIL import Image

CSRF = "ab" * 32


def post_json(client, url, data=None, **extra):
    body = data if isinstance(data, (str, bytes)) else json.dumps(data or {})
    return client.post(url, body, content_type="application/json", **extra)


def png_bytes(color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buf, format="PNG")
    return buf.getvalue()


def image_response(url=None, b64=None, revised=None):
    return SimpleNamespace(data=[SimpleNamespace(url=url, b64_json=b64, revised_prompt=revised)])
