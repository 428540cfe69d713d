import json
import os
import uuid
from typing import Optional
from utils.logger_factory import new_logger

VISITOR_ID_KEY = "visitor_id"

# One year, roughly how long browser local storage survives in practice
DEFAULT_COOKIE_MAX_AGE = int(os.getenv("VISITOR_COOKIE_MAX_AGE", str(365 * 24 * 60 * 60)))


class KeyValueStorage:
    """
    Durable key-value storage holding the visitor identity.

    Subclasses implement get/set. Values are strings.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class InMemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[dict] = None):
        self._values = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStorage(KeyValueStorage):
    """Stores values in a small JSON document on disk so they survive restarts."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return str(value) if value is not None else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)


class CookieStorage(KeyValueStorage):
    """
    Browser-side storage reached over HTTP: reads the request's cookies and
    writes long-lived cookies onto the outgoing response.
    """

    def __init__(self, request, response, max_age: int = DEFAULT_COOKIE_MAX_AGE):
        self.request = request
        self.response = response
        self.max_age = max_age
        self._written = {}

    def get(self, key: str) -> Optional[str]:
        if key in self._written:
            return self._written[key]
        return self.request.cookies.get(key)

    def set(self, key: str, value: str) -> None:
        self._written[key] = value
        self.response.set_cookie(
            key=key,
            value=value,
            max_age=self.max_age,
            httponly=True,
            samesite="lax",
        )


def generate_visitor_id() -> str:
    return str(uuid.uuid4())


class VisitorIdentityProvider:
    """
    Resolves the stable visitor identity from a storage backend.

    init() reads the stored id or generates and persists a new one before
    returning it. get() returns the resolved id and requires init() first.
    """

    def __init__(self, storage: KeyValueStorage, key: str = VISITOR_ID_KEY):
        self.storage = storage
        self.key = key
        self._visitor_id: Optional[str] = None

    def init(self) -> str:
        if self._visitor_id is not None:
            return self._visitor_id

        visitor_id = self.storage.get(self.key)
        if not visitor_id:
            visitor_id = generate_visitor_id()
            self.storage.set(self.key, visitor_id)
            new_logger("visitor_identity").debug(f"Created visitor id {visitor_id}")
        self._visitor_id = visitor_id
        return visitor_id

    def get(self) -> str:
        if self._visitor_id is None:
            raise RuntimeError("Visitor identity has not been initialised; call init() first")
        return self._visitor_id
