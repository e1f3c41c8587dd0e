"""
=============================================================================
EMBEDDED ASSETS
=============================================================================

The two read-only blobs the service serves:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SpecDocument      one JSON byte string (the OpenAPI document)      │
    │                   served verbatim at /swagger/doc.json             │
    ├─────────────────────────────────────────────────────────────────────┤
    │ StaticAssetTree   relative path → bytes (the Swagger UI bundle)    │
    │                   served under /swagger/                           │
    └─────────────────────────────────────────────────────────────────────┘

Both are loaded once at startup, never mutated, and live as long as the
process. They are grouped into an AssetBundle that is built once and handed
to the router builder. There is no module-level handle to reassign.

=============================================================================
FAILURE POLICY
=============================================================================

    UI tree missing   → ValueError at startup. The process cannot serve
                        its UI, so it refuses to start.

    Spec unreadable   → recorded, not raised. Every request for the
                        document then gets a 500 via AssetReadError, and
                        the rest of the service keeps working.

The bytes are opaque. Nothing here parses or validates JSON, HTML or JS.

=============================================================================
"""

import hashlib
import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional


logger = logging.getLogger(__name__)


PACKAGE_STATIC_DIR = Path(__file__).resolve().parent / "static"
DEFAULT_SPEC_PATH = PACKAGE_STATIC_DIR / "docs" / "swagger.json"
DEFAULT_SWAGGER_UI_DIR = PACKAGE_STATIC_DIR / "swagger_ui_dist"


class AssetReadError(Exception):
    """Raised when an embedded asset cannot be read."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Could not read {source}: {reason}")
        self.source = source
        self.reason = reason


@dataclass(frozen=True)
class SpecDocument:
    """
    The OpenAPI document, as opaque bytes.

    Construct with ``SpecDocument.load(path)`` at startup or
    ``SpecDocument.from_bytes(...)`` in tests.
    """

    source: str
    content: Optional[bytes] = field(default=None, repr=False)
    error: Optional[str] = None

    @classmethod
    def load(cls, path: Path) -> "SpecDocument":
        """
        Read the document from disk once.

        I/O errors are logged and remembered instead of raised, so they
        surface as 500s on /swagger/doc.json rather than at import time.
        """
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            logger.error(f"Could not load spec document {path}: {e}")
            return cls(source=str(path), error=str(e))

        logger.debug(f"Loaded spec document {path} ({len(content)} bytes)")
        return cls(source=str(path), content=content)

    @classmethod
    def from_bytes(cls, content: bytes, source: str = "<memory>") -> "SpecDocument":
        return cls(source=source, content=bytes(content))

    def read(self) -> bytes:
        """
        Return the document bytes.

        Raises:
            AssetReadError: The load failed, or produced an empty blob.
        """
        if self.content is None:
            raise AssetReadError(self.source, self.error or "not loaded")
        if not self.content:
            raise AssetReadError(self.source, "document is empty")
        return self.content


def _normalize(path: str) -> str:
    """
    Canonical key for a tree path.

    "/css//a.css" → "css/a.css", "./index.html" → "index.html",
    "" or "/" → "" (the tree root).
    """
    cleaned = posixpath.normpath("/" + path.replace("\\", "/")).lstrip("/")
    return "" if cleaned == "." else cleaned


class StaticAssetTree:
    """
    Immutable mapping from relative POSIX path to file bytes.

    Directories are not stored. They are implied by file paths, so
    "css/app.css" makes "css" a directory. The root ("") is always a
    directory.

        tree = StaticAssetTree.from_mapping({
            "index.html": b"<html>...",
            "css/app.css": b"body {}",
        })
        tree.get("index.html")   # b"<html>..."
        tree.is_dir("css")       # True
        tree.get("missing.js")   # None
    """

    def __init__(self, files: Mapping[str, bytes], source: str = "<memory>"):
        normalized = {}
        for path, content in files.items():
            key = _normalize(path)
            if not key:
                raise ValueError(f"Asset path must name a file: {path!r}")
            normalized[key] = bytes(content)

        self._files: Mapping[str, bytes] = MappingProxyType(normalized)
        self._dirs = frozenset(self._parent_dirs(normalized))
        self._etags = MappingProxyType({
            key: f'"{hashlib.sha1(content).hexdigest()}"'
            for key, content in normalized.items()
        })
        self.source = source

    @staticmethod
    def _parent_dirs(paths: Iterable[str]) -> set[str]:
        dirs = {""}
        for path in paths:
            parent = posixpath.dirname(path)
            while parent:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
        return dirs

    @classmethod
    def from_mapping(cls, files: Mapping[str, bytes]) -> "StaticAssetTree":
        return cls(files)

    @classmethod
    def from_directory(cls, root: Path) -> "StaticAssetTree":
        """
        Snapshot every file under ``root`` into memory.

        Raises:
            ValueError: ``root`` is not a directory.
        """
        root = Path(root).resolve()
        if not root.is_dir():
            raise ValueError(f"Swagger UI directory does not exist: {root}")

        files = {
            path.relative_to(root).as_posix(): path.read_bytes()
            for path in sorted(root.rglob("*"))
            if path.is_file()
        }
        logger.debug(f"Loaded {len(files)} UI assets from {root}")
        return cls(files, source=str(root))

    def get(self, path: str) -> Optional[bytes]:
        """File bytes for ``path``, or None."""
        return self._files.get(_normalize(path))

    def etag(self, path: str) -> Optional[str]:
        """Quoted SHA-1 of the file content, or None."""
        return self._etags.get(_normalize(path))

    def is_dir(self, path: str) -> bool:
        return _normalize(path) in self._dirs

    def paths(self) -> list[str]:
        """All file paths, sorted."""
        return sorted(self._files)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and _normalize(path) in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"StaticAssetTree(source={self.source!r}, files={len(self)})"


@dataclass(frozen=True)
class AssetBundle:
    """Everything the router serves, built once at startup."""
    spec: SpecDocument
    ui: StaticAssetTree


def load_assets(
    spec_path: Optional[Path] = None,
    swagger_ui_dir: Optional[Path] = None,
) -> AssetBundle:
    """
    Load the spec document and UI tree.

    Missing arguments fall back to the copies shipped inside the package.
    """
    spec_path = Path(spec_path) if spec_path else DEFAULT_SPEC_PATH
    swagger_ui_dir = Path(swagger_ui_dir) if swagger_ui_dir else DEFAULT_SWAGGER_UI_DIR

    bundle = AssetBundle(
        spec=SpecDocument.load(spec_path),
        ui=StaticAssetTree.from_directory(swagger_ui_dir),
    )
    logger.info(f"Assets loaded: spec={bundle.spec.source} ui={bundle.ui.source} ({len(bundle.ui)} files)")
    return bundle
