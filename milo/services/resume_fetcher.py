from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import httpx

from milo.core.errors import DownloadError, FetchError, InvalidInputError, SizeLimitError
from milo.parsing.models import RawDocument

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch resume file"
DOWNLOAD_FAILED_MESSAGE = "Failed to download resume"
TOO_LARGE_MESSAGE = "File too large. Please upload a file under 10MB."

REQUEST_HEADERS = {
    "User-Agent": "MiloResumeFetcher/1.0 (+https://milo.careers)",
    "Accept": (
        "application/pdf,application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "text/plain,*/*;q=0.8"
    ),
}


def normalize_resume_url(raw_url: str | None) -> tuple[str, str]:
    value = (raw_url or "").strip()
    if not value:
        raise InvalidInputError("Resume URL is required")
    if not re.match(r"^[a-z][a-z0-9+.-]*://", value, flags=re.IGNORECASE):
        value = f"https://{value}"
    parsed = urlparse(value)
    if parsed.scheme.lower() not in {"http", "https"}:
        raise InvalidInputError("Only http/https resume URLs are supported.")
    hostname = (parsed.hostname or "").lower().strip()
    if not hostname:
        raise InvalidInputError("Invalid resume URL.")
    normalized = urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), parsed.path or "/", "", parsed.query, ""))
    return normalized, hostname


def host_is_private_or_local(hostname: str) -> bool:
    host = (hostname or "").strip().lower()
    if host in {"localhost", "127.0.0.1", "::1"} or host.endswith(".local"):
        return True
    try:
        ip = ipaddress.ip_address(host)
        return bool(ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved)
    except ValueError:
        pass
    try:
        infos = socket.getaddrinfo(host, None)
    except OSError:
        # Unresolvable hosts fail later as a fetch error.
        return False
    for _family, _socktype, _proto, _canon, sockaddr in infos:
        try:
            resolved = ipaddress.ip_address(sockaddr[0])
        except (ValueError, IndexError):
            continue
        if resolved.is_private or resolved.is_loopback or resolved.is_link_local or resolved.is_reserved:
            return True
    return False


def _with_query(parsed, **params: str) -> str:
    query = {key: values[-1] for key, values in parse_qs(parsed.query or "").items()}
    query.update(params)
    return urlencode(query)


def to_direct_download_url(url: str) -> str:
    """Rewrite Drive, Dropbox and OneDrive share pages to their file download URL."""
    parsed = urlparse(url)
    host = (parsed.netloc or "").lower()

    if "drive.google.com" in host:
        match = re.search(r"/file/d/([^/]+)", parsed.path or "")
        file_id = match.group(1) if match else (parse_qs(parsed.query or "").get("id") or [""])[0]
        if file_id:
            return f"https://drive.google.com/uc?export=download&id={file_id}"
        return url

    if ("dropbox.com" in host or "dropboxusercontent.com" in host) and parsed.path:
        netloc = host.replace("www.", "")
        if netloc == "dropbox.com":
            netloc = "dl.dropboxusercontent.com"
        return urlunparse(("https", netloc, parsed.path, "", _with_query(parsed, dl="1"), ""))

    if "1drv.ms" in host or "onedrive.live.com" in host:
        return urlunparse(("https", host, parsed.path or "/", "", _with_query(parsed, download="1"), ""))

    return url


async def _read_body(response: httpx.Response, *, max_bytes: int) -> bytes:
    chunks: list[bytes] = []
    received = 0
    async for chunk in response.aiter_bytes():
        received += len(chunk)
        if received > max_bytes:
            raise SizeLimitError(TOO_LARGE_MESSAGE)
        chunks.append(chunk)
    return b"".join(chunks)


async def _download(
    url: str,
    *,
    hostname: str,
    timeout_s: float,
    max_bytes: int,
    transport: httpx.AsyncBaseTransport | None,
) -> tuple[bytes, str]:
    async with httpx.AsyncClient(
        timeout=timeout_s,
        follow_redirects=True,
        headers=REQUEST_HEADERS,
        transport=transport,
    ) as client:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                logger.warning("resume_download_failed host=%s status=%s", hostname, response.status_code)
                raise DownloadError(DOWNLOAD_FAILED_MESSAGE)
            content_type = (response.headers.get("content-type") or "").strip()
            body = await _read_body(response, max_bytes=max_bytes)
    return body, content_type


def fetch_resume(
    url: str | None,
    *,
    timeout_s: float = 30.0,
    max_bytes: int = 10 * 1024 * 1024,
    block_private_hosts: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RawDocument:
    """Download a resume; ``timeout_s`` bounds the whole exchange, connect to last byte.

    httpx timeouts apply per read, so a server trickling bytes could keep a
    request alive indefinitely. The download is cancelled once the wall-clock
    deadline passes instead.
    """
    normalized_url, hostname = normalize_resume_url(url)
    download_url = to_direct_download_url(normalized_url)
    if download_url != normalized_url:
        download_url, hostname = normalize_resume_url(download_url)
    if block_private_hosts and host_is_private_or_local(hostname):
        raise InvalidInputError("Private or local URLs are not allowed for resume processing.")

    download = _download(
        download_url,
        hostname=hostname,
        timeout_s=timeout_s,
        max_bytes=max_bytes,
        transport=transport,
    )
    try:
        body, content_type = asyncio.run(asyncio.wait_for(download, timeout=timeout_s))
    except asyncio.TimeoutError as exc:
        logger.warning("resume_fetch_deadline_exceeded host=%s timeout_s=%s", hostname, timeout_s)
        raise FetchError(FETCH_FAILED_MESSAGE) from exc
    except httpx.HTTPError as exc:
        logger.warning("resume_fetch_failed host=%s: %s", hostname, exc)
        raise FetchError(FETCH_FAILED_MESSAGE) from exc

    logger.info("resume_fetched host=%s bytes=%s content_type=%s", hostname, len(body), content_type or "-")
    return RawDocument(content=body, content_type=content_type, url=download_url)
