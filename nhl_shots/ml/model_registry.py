"""
In-process registry of prediction model versions
"""
import logging
import threading
from contextlib import contextmanager
from typing import Callable, List, Optional

from nhl_shots.ml.parameters import (
    DEFAULT_MODEL_VERSION,
    ModelVersion,
    create_default_model,
    get_default_models,
)

logger = logging.getLogger(__name__)


class RWLock:
    """Many concurrent readers or one writer"""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ModelRegistry:
    """
    Model versions and the active default, shared by the prediction service and scheduler
    """

    def __init__(self,
                 active_version_id: int = DEFAULT_MODEL_VERSION,
                 catalog: Callable[[], List[ModelVersion]] = get_default_models):
        """
        Initialize registry

        Args:
            active_version_id: Version used when a caller does not ask for one
            catalog: Factory for the versions loaded on first use
        """
        self._lock = RWLock()
        self._catalog = catalog
        self._versions: List[ModelVersion] = []
        self._active_version_id = active_version_id
        self._initialized = False

    def _ensure_initialized(self):
        if self._initialized:
            return
        with self._lock.write():
            if self._initialized:
                return
            self._versions = list(self._catalog())
            self._initialized = True
            logger.info(f"Loaded {len(self._versions)} model versions, active version {self._active_version_id}")

    def get_model_version(self, version_id: Optional[int] = None) -> ModelVersion:
        """
        Resolve a model version, never raising

        Falls back from the requested id to the active default, then to a
        hard-coded minimal model.
        """
        self._ensure_initialized()
        with self._lock.read():
            requested = version_id if version_id is not None else self._active_version_id
            for candidate in (requested, self._active_version_id):
                for version in self._versions:
                    if version.id == candidate:
                        return version
        logger.warning(f"Model version {version_id} not found, using built-in default")
        return create_default_model()

    def get_all_models(self) -> List[ModelVersion]:
        self._ensure_initialized()
        with self._lock.read():
            return list(self._versions)

    def get_active_models(self) -> List[ModelVersion]:
        """Versions flagged active; every version is scored in all-model runs"""
        return [version for version in self.get_all_models() if version.active]

    def get_active_version_id(self) -> int:
        with self._lock.read():
            return self._active_version_id

    def set_active_version(self, version_id: int):
        self._ensure_initialized()
        with self._lock.write():
            if not any(version.id == version_id for version in self._versions):
                raise ValueError(f"Unknown model version: {version_id}")
            self._active_version_id = version_id
        logger.info(f"Active model version set to {version_id}")

    def register(self, version: ModelVersion):
        """Add or replace a model version"""
        self._ensure_initialized()
        with self._lock.write():
            self._versions = [v for v in self._versions if v.id != version.id]
            self._versions.append(version)
            self._versions.sort(key=lambda v: v.id)
        logger.info(f"Registered model version {version.id} ({version.name})")
