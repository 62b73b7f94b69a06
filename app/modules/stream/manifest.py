"""HLS playlist rewriting.

Pure text transform: media URIs in a playlist are pointed back at the relay's
segment endpoint so the player never talks to the origin directly.
"""
import posixpath
import re
from urllib.parse import quote, urlsplit

MEDIA_URI_RE = re.compile(r"\.(?:ts|m3u8)(?:[?#].*)?$", re.IGNORECASE)
ABSOLUTE_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)

MANIFEST_CONTENT_TYPE = "application/vnd.apple.mpegurl"


class ManifestRewriteFailure(Exception):
    pass


def is_media_uri(line: str) -> bool:
    line = line.strip()
    if not line or line.startswith("#"):
        return False
    return bool(MEDIA_URI_RE.search(line))


def manifest_dir(relative_path: str | None) -> str:
    """Directory prefix ("720p/") of a sub-playlist, "" for the top-level one."""
    if not relative_path:
        return ""
    d = posixpath.dirname(relative_path)
    return f"{d}/" if d else ""


def _under_asset_root(path: str, asset_path: str | None) -> str | None:
    root = (asset_path or "").rstrip("/") + "/"
    if asset_path and path.startswith(root):
        return path[len(root):]
    return None


def relay_target(uri: str, directory: str = "", asset_base_url: str | None = None, asset_path: str | None = None) -> str | None:
    """Path relative to the asset root for a media line, or None to leave the line alone.

    Relative entries resolve against `directory`. Root-relative entries and absolute
    URLs on the asset host must sit under `asset_path`; anything else on the asset
    host raises ManifestRewriteFailure. Absolute URLs on other hosts return None.
    """
    if ABSOLUTE_RE.match(uri):
        parts = urlsplit(uri)
        if not asset_base_url or f"{parts.scheme}://{parts.netloc}".lower() != asset_base_url.rstrip("/").lower():
            return None
        path, query = parts.path, parts.query
    elif uri.startswith("/"):
        path, _, query = uri.partition("?")
    else:
        return posixpath.normpath(directory + uri)

    relative = _under_asset_root(path, asset_path)
    if relative is None:
        raise ManifestRewriteFailure(f"media entry outside the asset directory: {uri}")
    return f"{relative}?{query}" if query else relative


def rewrite_manifest(
    text: str,
    segment_endpoint: str,
    directory: str = "",
    *,
    asset_base_url: str | None = None,
    asset_path: str | None = None,
) -> str:
    """Replace every `*.ts` / `*.m3u8` line with `{segment_endpoint}?path=<path under the asset root>`.

    Line count and order are preserved; comment/tag lines and blank lines are copied
    verbatim. `directory` is prepended to relative names so entries of a nested
    playlist stay relative to the asset root. Root-relative and same-host absolute
    entries are mapped back under the asset root; absolute URLs on other hosts are
    left as they are.
    """
    if not isinstance(text, str):
        raise ManifestRewriteFailure(f"manifest must be text, got {type(text).__name__}")
    if text.strip() and not text.lstrip("\ufeff").lstrip().startswith("#EXTM3U"):
        raise ManifestRewriteFailure("not an HLS playlist (missing #EXTM3U header)")

    lines = text.split("\n")
    out = []
    for line in lines:
        # keep CRLF endings intact
        body, cr = (line[:-1], "\r") if line.endswith("\r") else (line, "")
        target = relay_target(body.strip(), directory, asset_base_url, asset_path) if is_media_uri(body) else None
        if target is None:
            out.append(line)
        else:
            out.append(f"{segment_endpoint}?path={quote(target, safe='/')}{cr}")
    return "\n".join(out)
