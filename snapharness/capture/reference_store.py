"""Reference image store — keeps reference PNGs and their JSON registry."""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from pathlib import Path

from PIL import Image

from snapharness.models.result import ReferenceRegistry, SnapshotReference

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def safe_name(value: str) -> str:
    """Turn a test id or label into a filesystem-safe path component.

    Values that had to be rewritten get a short digest of the original
    appended, so two ids that sanitise alike still get different paths.
    """
    cleaned = _UNSAFE_CHARS.sub("_", value).strip("_") or "unnamed"
    if cleaned == value:
        return cleaned
    return f"{cleaned}_{hashlib.sha256(value.encode()).hexdigest()[:8]}"


class ReferenceStore:
    """Manages reference images and their registry under one directory."""

    def __init__(self, reference_dir: Path):
        self.reference_dir = reference_dir
        self.registry_path = reference_dir / "registry.json"

    def load(self) -> ReferenceRegistry:
        """Load registry from disk, or create a new one."""
        if self.registry_path.exists():
            try:
                with open(self.registry_path) as f:
                    data = json.load(f)
                return ReferenceRegistry(**data)
            except Exception as e:
                logger.warning("Failed to load reference registry: %s. Creating new.", e)
        return ReferenceRegistry()

    def save(self, registry: ReferenceRegistry) -> None:
        """Persist registry to disk."""
        self.registry_path.parent.mkdir(parents=True, exist_ok=True)
        registry.last_updated = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        with open(self.registry_path, "w") as f:
            json.dump(registry.model_dump(), f, indent=2)
        logger.debug("Saved reference registry to %s", self.registry_path)

    def _key(self, test_id: str, name: str) -> str:
        return f"{test_id}__{name}"

    def image_path(self, test_id: str, name: str) -> Path:
        return self.reference_dir / safe_name(test_id) / f"{safe_name(name)}.png"

    def get(self, test_id: str, name: str) -> SnapshotReference | None:
        """Look up a reference, ignoring entries whose image is gone.

        An image replaced outside the store (a manual re-record or a merge)
        no longer matches its registered hash; its entry is refreshed.
        """
        registry = self.load()
        key = self._key(test_id, name)
        entry = registry.references.get(key)
        if entry is None:
            # An image committed without a registry entry still counts
            path = self.image_path(test_id, name)
            if path.exists():
                return self._entry_for(test_id, name, path)
            return None
        abs_path = self.reference_dir / entry.image_path
        if not abs_path.exists():
            logger.warning("Reference image missing for %s: %s", key, abs_path)
            return None
        if hashlib.sha256(abs_path.read_bytes()).hexdigest() == entry.image_hash:
            return entry

        logger.warning("Reference image for %s changed since it was registered", key)
        try:
            refreshed = self._entry_for(test_id, name, abs_path)
        except OSError as e:
            # Left for the comparator to report when it reads the image
            logger.warning("Could not re-register %s: %s", abs_path, e)
            return entry
        registry.references[key] = refreshed
        self.save(registry)
        return refreshed

    def absolute_path(self, entry: SnapshotReference) -> Path:
        return self.reference_dir / entry.image_path

    def store(self, test_id: str, name: str, image: Image.Image) -> SnapshotReference:
        """Write ``image`` as the reference for (test_id, name) and register it."""
        dest = self.image_path(test_id, name)
        dest.parent.mkdir(parents=True, exist_ok=True)
        image.save(dest, format="PNG")

        entry = self._entry_for(test_id, name, dest)
        registry = self.load()
        registry.references[self._key(test_id, name)] = entry
        self.save(registry)
        logger.info("Stored reference for %s/%s (%dx%d)", test_id, name, entry.width, entry.height)
        return entry

    def _entry_for(self, test_id: str, name: str, path: Path) -> SnapshotReference:
        with Image.open(path) as img:
            width, height = img.size
        return SnapshotReference(
            test_id=test_id,
            name=name,
            width=width,
            height=height,
            image_path=str(path.relative_to(self.reference_dir)),
            captured_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            image_hash=hashlib.sha256(path.read_bytes()).hexdigest(),
        )
