import base64
import binascii
import hashlib
import hmac
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)
track_logger = logging.getLogger("offers.track")

UNSAFE_SCHEME_RE = re.compile(r"^\s*(javascript|data|vbscript):", re.IGNORECASE)
HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
TRACK_PATH = "/api/track"

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def sign_value(value: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()


def decode_b64(value: str) -> str:
    """Standard or URL-safe base64, padding optional; '' when undecodable."""
    if not value:
        return ""
    cleaned = value.strip().replace("-", "+").replace("_", "/").replace(" ", "+")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True).decode("utf-8").strip()
    except (binascii.Error, ValueError):
        return ""


def safe_destination(raw: str) -> Optional[str]:
    """
    Normalized redirect target, or None for script-bearing schemes.
    Site-relative paths are kept; bare hosts get https://.
    """
    value = (raw or "").strip()
    if not value:
        return None
    if UNSAFE_SCHEME_RE.match(value):
        return None
    if value.startswith("/"):
        # "//host" and "/\host" are resolved by browsers as another origin
        if value[1:2] in ("/", "\\"):
            return "https://" + value[2:]
        return value
    if not HTTP_URL_RE.match(value):
        return "https://" + value
    return value


def host_of(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def host_matches(host: str, domains) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def anonymized_user_hash(ip: str, user_agent: str) -> str:
    return hashlib.sha256(f"{ip}{user_agent}".encode("utf-8")).hexdigest()[:16]


@dataclass
class TrackOutcome:
    status: int
    location: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.status == 302


class TrackLogWriter:
    """Writes click entries off the request thread (logger plus optional JSON-lines file)."""

    def __init__(self, log_file: str = ""):
        self.log_file = log_file
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="track-log")

    def _write(self, entry: dict):
        line = json.dumps(entry, ensure_ascii=False)
        track_logger.info(line)
        if not self.log_file:
            return
        try:
            with open(self.log_file, "a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except OSError:
            logger.warning("Could not append to track log file %s", self.log_file)

    def emit(self, entry: dict):
        return self._executor.submit(self._write, entry)

    def close(self):
        """Stop accepting entries; queued ones are still written."""
        self._executor.shutdown(wait=False)


class LinkTracker:
    def __init__(self, *, allow_list=(), deny_list=(), secret="", require_signature=False, writer=None):
        self.allow_list = [d.lower() for d in allow_list if d]
        self.deny_list = [d.lower() for d in deny_list if d]
        self.secret = secret or ""
        self.require_signature = require_signature
        self.writer = writer or TrackLogWriter()

    def verify(self, value: str, signature: str) -> bool:
        if not self.secret:
            return not self.require_signature
        return hmac.compare_digest(sign_value(value, self.secret), (signature or "").strip().lower())

    def host_allowed(self, host: str) -> bool:
        if not host or host_matches(host, self.deny_list):
            return False
        if not self.allow_list:
            return True
        return host_matches(host, self.allow_list)

    def resolve(self, params: dict) -> TrackOutcome:
        raw = (params.get("url") or "").strip()
        if not raw:
            raw = decode_b64(params.get("b64") or "")
        if not raw:
            return TrackOutcome(302, "/")

        if not self.verify(raw, params.get("sig") or ""):
            return TrackOutcome(400, error="Invalid signature")

        destination = safe_destination(raw)
        if destination is None:
            return TrackOutcome(302, "/")

        if destination.startswith(TRACK_PATH):
            return TrackOutcome(400, error="Loop detected")

        if not destination.startswith("/") and not self.host_allowed(host_of(destination)):
            logger.info("Track destination rejected by host policy: %s", host_of(destination))
            return TrackOutcome(302, "/")

        return TrackOutcome(302, destination)

    def record(self, *, ip, user_agent, referer, target, params):
        entry = {
            "time": datetime.now(timezone.utc).isoformat(),
            "ip": ip,
            "userAgent": user_agent,
            "anonymizedUserHash": anonymized_user_hash(ip, user_agent),
            "referer": referer,
            "target": target,
            "tab": params.get("tab") or "",
            "title": params.get("title") or "",
            "lang": params.get("lang") or "",
        }
        return self.writer.emit(entry)
