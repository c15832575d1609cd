"""
JSON-file document store for plan and tracking documents.

Documents live at <data_dir>/artifacts/<app_id>/<key...>.json, where a key
is a path tuple such as ("users", user_id, "plans", plan_id). A collection
scope is the key without its last element.

Change notification is push-based and in-process: every write or delete
made through any DocumentStore notifies the current subscribers of that
document (and of its collection) with the latest full state. Writes replace
whole documents; the last write wins.
"""

import json
import os
import tempfile
import threading
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

from .errors import LoadFailure, SaveFailure
from .serializers import ValidationError, dump_document, parse_document

Key = tuple[str, ...]
Document = dict[str, Any]
DocumentCallback = Callable[[Document | None], None]
CollectionCallback = Callable[[list[tuple[str, Document]]], None]
ErrorCallback = Callable[[LoadFailure], None]
Unsubscribe = Callable[[], None]

SUFFIX = ".json"


class _Subscription:
    """A registered listener; inactive subscriptions never fire."""

    def __init__(self, deliver: Callable[[], None]):
        self.deliver = deliver
        self.active = True


# Listener registries keyed by resolved filesystem path, shared by every
# store instance in the process so that two stores on the same root see
# each other's writes.
_LOCK = threading.RLock()
_DOC_LISTENERS: dict[Path, list[_Subscription]] = {}
_COLLECTION_LISTENERS: dict[Path, list[_Subscription]] = {}


def _key_label(key: Key) -> str:
    return "/".join(key)


class DocumentStore:
    """
    Manages plan and tracking documents stored as JSON files.

    Operations: get_once, set_whole, subscribe, list_collection,
    subscribe_collection, create_new, delete.
    """

    def __init__(self, data_dir: str | Path, app_id: str):
        """
        Initialize the document store.

        Args:
            data_dir: Root directory for all stored data
            app_id: Tenant/app scope segment of every key
        """
        self.data_dir = Path(data_dir).expanduser()
        self.app_id = app_id
        self.root = self.data_dir / "artifacts" / app_id

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def path_for(self, key: Key) -> Path:
        """Filesystem path of a document."""
        if not key:
            raise ValueError("Document key must not be empty")
        for part in key:
            if not part or part in (".", "..") or "/" in part or "\\" in part:
                raise ValueError(f"Invalid key segment: {part!r}")
        return self.root.joinpath(*key[:-1]) / f"{key[-1]}{SUFFIX}"

    def dir_for(self, scope: Key) -> Path:
        """Filesystem directory of a collection."""
        return self.path_for(scope + ("_",)).parent

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_once(self, key: Key) -> Document | None:
        """
        Read a document.

        Returns:
            The document, or None if it does not exist

        Raises:
            LoadFailure: If the file cannot be read or is not a JSON object
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
            return parse_document(text, str(path))
        except (OSError, ValidationError) as e:
            logger.error("Document read failed", key=_key_label(key), error=str(e))
            raise LoadFailure("read document", _key_label(key), str(e)) from e

    def list_collection(self, scope: Key) -> list[tuple[str, Document]]:
        """
        List the documents of a collection, ordered by document id.

        Raises:
            LoadFailure: If any document cannot be read
        """
        directory = self.dir_for(scope)
        if not directory.is_dir():
            return []
        ids = sorted(p.stem for p in directory.glob(f"*{SUFFIX}") if p.is_file())
        docs = []
        for doc_id in ids:
            doc = self.get_once(scope + (doc_id,))
            if doc is not None:
                docs.append((doc_id, doc))
        return docs

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_whole(self, key: Key, value: Document, merge: bool = False) -> None:
        """
        Write a document.

        Args:
            key: Document key
            value: New document content
            merge: Shallow-merge top-level fields into the existing document
                instead of replacing it

        Raises:
            SaveFailure: If the document cannot be written
        """
        path = self.path_for(key)
        label = _key_label(key)
        if merge:
            try:
                existing = self.get_once(key) or {}
            except LoadFailure as e:
                raise SaveFailure("merge document", label, e.reason) from e
            value = {**existing, **value}

        try:
            text = dump_document(value)
        except (TypeError, ValueError) as e:
            raise SaveFailure("serialize document", label, str(e)) from e

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=SUFFIX)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Document write failed", key=label, error=str(e))
            raise SaveFailure("write document", label, str(e)) from e

        logger.debug("Document written", key=label, merge=merge)
        self._notify(path)

    def create_new(self, scope: Key, value: Document) -> str:
        """
        Create a document with a generated id in a collection.

        Returns:
            The new document id
        """
        doc_id = uuid.uuid4().hex[:20]
        self.set_whole(scope + (doc_id,), value)
        return doc_id

    def delete(self, key: Key) -> None:
        """
        Delete a document. Deleting a missing document is not an error.

        Raises:
            SaveFailure: If the file exists but cannot be removed
        """
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise SaveFailure("delete document", _key_label(key), str(e)) from e
        logger.debug("Document deleted", key=_key_label(key))
        self._notify(path)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        key: Key,
        on_change: DocumentCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """
        Subscribe to a document.

        on_change receives the current state immediately and then the latest
        full state (None when missing) after every change. Read failures go
        to on_error when given, otherwise they propagate.

        Returns:
            A callable that cancels the subscription
        """
        path = self.path_for(key)

        def deliver() -> None:
            try:
                doc = self.get_once(key)
            except LoadFailure as e:
                if on_error is None:
                    raise
                on_error(e)
                return
            on_change(doc)

        return self._register(_DOC_LISTENERS, path, deliver)

    def subscribe_collection(
        self,
        scope: Key,
        on_change: CollectionCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Subscribe to the listing of a collection; same contract as subscribe()."""
        directory = self.dir_for(scope)

        def deliver() -> None:
            try:
                docs = self.list_collection(scope)
            except LoadFailure as e:
                if on_error is None:
                    raise
                on_error(e)
                return
            on_change(docs)

        return self._register(_COLLECTION_LISTENERS, directory, deliver)

    def _register(
        self,
        registry: dict[Path, list[_Subscription]],
        target: Path,
        deliver: Callable[[], None],
    ) -> Unsubscribe:
        target = target.resolve()
        sub = _Subscription(deliver)
        with _LOCK:
            registry.setdefault(target, []).append(sub)

        def unsubscribe() -> None:
            with _LOCK:
                sub.active = False
                subs = registry.get(target, [])
                if sub in subs:
                    subs.remove(sub)
                if not subs:
                    registry.pop(target, None)

        try:
            sub.deliver()
        except Exception:
            unsubscribe()
            raise
        return unsubscribe

    def _notify(self, path: Path) -> None:
        path = path.resolve()
        # The write is already committed, so a failed read is logged, not raised.
        with _LOCK:
            subs = list(_DOC_LISTENERS.get(path, [])) + list(_COLLECTION_LISTENERS.get(path.parent, []))
            for sub in subs:
                if not sub.active:
                    continue
                try:
                    sub.deliver()
                except LoadFailure as e:
                    logger.error("Notification read failed", path=str(path), key=e.key, reason=e.reason)


def read_json_file(path: Path) -> dict[str, Any] | None:
    """Read a small JSON side file (e.g. per-user state); None if missing or unreadable."""
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return None
    return data if isinstance(data, dict) else None
