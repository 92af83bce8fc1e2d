"""
Persistence service for the Floorball Live match tracker.

This module holds the authoritative document store: the ``teams``,
``players``, ``matches`` and ``tournaments`` collections as plain JSON-like
documents. Writes are whole-document upserts or deletes, change listeners are
pushed every write, and the whole store can be saved to and loaded from a
JSON file.
"""
import copy
import json
import logging
import os
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from ..utils import COLLECTIONS

logger = logging.getLogger(__name__)

Listener = Callable[[str, str, Optional[Dict[str, Any]]], None]


class StorageError(IOError):
    """Raised when the store cannot read or write a document."""


class IntegrityError(ValueError):
    """Raised when a delete would leave dangling references."""


class PersistenceService:
    """
    In-memory document store for teams, players, matches and tournaments.

    Documents are deep-copied on the way in and out so callers never share
    mutable state with the store. Listeners are called with
    ``(collection, document_id, document)`` after every write; ``document`` is
    None for deletes.
    """

    def __init__(self, file_path: Optional[str] = None):
        """
        Initialize an empty store.

        Args:
            file_path: Optional JSON file the store is saved to after each write
        """
        self.file_path = file_path
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener again
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, collection: str, doc_id: str, document: Optional[Dict[str, Any]]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(collection, doc_id, copy.deepcopy(document))
            except Exception:
                # one broken subscriber must not fail the write for everybody
                logger.exception("Listener failed for %s/%s", collection, doc_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of one document, or None if it does not exist."""
        with self._lock:
            document = self._collection(collection).get(doc_id)
            return copy.deepcopy(document) if document is not None else None

    def list_documents(self, collection: str) -> List[Dict[str, Any]]:
        """Return copies of all documents of a collection."""
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._collection(collection).values()]

    def get_match_document(self, match_id: str) -> Optional[Dict[str, Any]]:
        return self.get_document("matches", match_id)

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Copy of every collection, as pushed to a newly connected reader."""
        return {name: self.list_documents(name) for name in COLLECTIONS}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def upsert_team(self, document: Dict[str, Any]) -> str:
        return self._put("teams", document)

    def upsert_player(self, document: Dict[str, Any]) -> str:
        return self._put("players", document)

    def upsert_tournament(self, document: Dict[str, Any]) -> str:
        return self._put("tournaments", document)

    def create_match(self, document: Dict[str, Any]) -> str:
        """
        Store a new match document.

        Returns:
            Id of the stored match (generated when the document has none)
        """
        return self._put("matches", document)

    def replace_match(self, document: Dict[str, Any]) -> str:
        """Overwrite a match document as a whole."""
        if not document.get("id"):
            raise StorageError("Cannot replace a match without an id")
        return self._put("matches", document)

    def delete_match(self, match_id: str) -> None:
        self._delete("matches", match_id)

    def delete_team(self, team_id: str) -> None:
        """
        Delete a team that nothing refers to.

        Raises:
            IntegrityError: If players are assigned to the team or a match uses it
        """
        with self._lock:
            if any(p.get("team_id") == team_id for p in self._collections["players"].values()):
                raise IntegrityError("Cannot delete a team that still has players")
            for match in self._collections["matches"].values():
                refs = {(match.get("team_a") or {}).get("id"), (match.get("team_b") or {}).get("id")}
                if team_id in refs:
                    raise IntegrityError("Cannot delete a team that has matches")
        self._delete("teams", team_id)

    def delete_player(self, player_id: str) -> None:
        self._delete("players", player_id)

    def _collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        try:
            return self._collections[collection]
        except KeyError:
            raise StorageError(f"Unknown collection: {collection}") from None

    def _put(self, collection: str, document: Dict[str, Any]) -> str:
        stored = copy.deepcopy(document)
        doc_id = str(stored.get("id") or uuid.uuid4().hex)
        stored["id"] = doc_id
        with self._lock:
            documents = self._collection(collection)
            previous = documents.get(doc_id)
            documents[doc_id] = stored
            self._after_write(collection, doc_id, previous)
        self._notify(collection, doc_id, stored)
        return doc_id

    def _delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            removed = self._collection(collection).pop(doc_id, None)
            if removed is None:
                return
            self._after_write(collection, doc_id, removed)
        self._notify(collection, doc_id, None)

    def _after_write(self, collection: str, doc_id: str, previous: Optional[Dict[str, Any]]) -> None:
        """Persist to disk, restoring the previous document if that fails."""
        if not self.file_path:
            return
        try:
            self.save_to_file(self.file_path)
        except StorageError:
            documents = self._collections[collection]
            if previous is None:
                documents.pop(doc_id, None)
            else:
                documents[doc_id] = previous
            raise

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    def save_to_file(self, file_path: str) -> None:
        """
        Save every collection to a JSON file.

        Args:
            file_path: Path where to save the file

        Raises:
            StorageError: If the file cannot be written
        """
        directory = os.path.dirname(file_path)
        try:
            if directory and not os.path.exists(directory):
                os.makedirs(directory)
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(self.snapshot(), f, indent=2)
        except OSError as exc:
            logger.error("Could not save store to %s: %s", file_path, exc)
            raise StorageError(f"Could not save store to {file_path}") from exc

    @classmethod
    def load_from_file(cls, file_path: str, autosave: bool = False) -> 'PersistenceService':
        """
        Load a store from a JSON file written by ``save_to_file``.

        Args:
            file_path: Path to the JSON file to load
            autosave: Keep saving to the same file after every write

        Returns:
            PersistenceService holding the file's documents

        Raises:
            StorageError: If the file is missing or not valid JSON
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Could not load store from {file_path}") from exc

        store = cls()
        for name in COLLECTIONS:
            for document in data.get(name, []) or []:
                if isinstance(document, dict) and document.get("id"):
                    store._collections[name][str(document["id"])] = document
        if autosave:
            store.file_path = file_path
        return store
