import base64, binascii, hashlib, re
from typing import Any, Optional

DATA_URL = re.compile(r"^data:(.+?);base64,(.+)$")

def b64png_to_bytes(data_url: str) -> bytes:
    # accepts "data:image/png;base64,....." or the bare base64 payload
    if "," in data_url:
        data_url = data_url.split(",", 1)[1]
    return base64.b64decode(data_url)

def decode_data_url(data_url: str) -> Optional[bytes]:
    match = DATA_URL.match(str(data_url))
    if not match:
        return None
    try:
        return base64.b64decode(match.group(2))
    except (binascii.Error, ValueError):
        return None

def decode_signature(signature_input: Any) -> Optional[bytes]:
    """Raw bytes, a data:image/... URI, or anything carrying a ``bytes`` payload."""
    if isinstance(signature_input, (bytes, bytearray, memoryview)):
        return bytes(signature_input)
    if isinstance(signature_input, str):
        if signature_input.startswith("data:image/"):
            return decode_data_url(signature_input)
        return None
    if isinstance(signature_input, dict):
        payload = signature_input.get("bytes")
    else:
        payload = getattr(signature_input, "bytes", None)
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    return None

def sha256_bytes(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()
