import base64, hashlib, json
from datetime import datetime, timezone
from itsdangerous import URLSafeSerializer
from .config import SECRET_KEY

PNG_DATA_URI_PREFIX = "data:image/png;base64,"

def utcnow() -> datetime:
    # naive UTC, so values compare cleanly after a round trip through sqlite
    return datetime.now(timezone.utc).replace(tzinfo=None)

def b64png_to_bytes(data_url: str) -> bytes:
    # accepts "data:image/png;base64,....." or a bare base64 payload
    if "," in data_url:
        data_url = data_url.split(",", 1)[1]
    return base64.b64decode(data_url)

def bytes_to_b64png(data: bytes) -> str:
    return PNG_DATA_URI_PREFIX + base64.b64encode(data).decode("ascii")

def sha256_bytes(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()

def canonical_json(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)

def make_token(payload: dict) -> str:
    s = URLSafeSerializer(SECRET_KEY, salt="identity")
    return s.dumps(payload)

def read_token(token: str) -> dict:
    s = URLSafeSerializer(SECRET_KEY, salt="identity")
    return s.loads(token)
