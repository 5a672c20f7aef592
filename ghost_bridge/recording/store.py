"""Recipe store — JSON file persistence for recordings and recipes.

Layout under the base directory::

    recipes/<name>.json
    recordings/<name>-<YYYYMMDDTHHMMSS>.json

Files are pretty-printed, key-sorted JSON.  Every write goes to
``<file>.tmp`` first and is then renamed over the destination, so readers
see either the previous complete file or the new one.  Recipes are mutable
by name: the existing file is removed immediately before the rename.

Loaders return ``None`` for missing or unreadable files; writers raise
:class:`StoreError`.  Whether a write failure matters is the caller's call.
"""

from __future__ import annotations

import contextlib
import os
from pathlib import Path

from pydantic import ValidationError

from ghost_bridge.exceptions import RecipeValidationError, StoreError
from ghost_bridge.logging import get_logger
from ghost_bridge.protocol.codec import dumps
from ghost_bridge.protocol.constants import JSON_SUFFIX, TEMP_SUFFIX
from ghost_bridge.recording.models import Recipe, RecipeSummary, Recording, check_name

log = get_logger(__name__)

RECIPES_DIRNAME = "recipes"
RECORDINGS_DIRNAME = "recordings"


def _safe_name(name: str) -> bool:
    try:
        check_name(name)
    except ValueError:
        return False
    return True


def parse_recipe(data: bytes | str) -> Recipe:
    """Validate raw JSON as a Recipe.

    Raises:
        RecipeValidationError: the data is not JSON or not a well-formed recipe.
    """
    try:
        return Recipe.model_validate_json(data)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        messages = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ())) or 'recipe'}: {e.get('msg', '')}"
            for e in errors
        )
        raise RecipeValidationError(f"Invalid recipe: {messages}", errors=errors) from exc


class RecipeStore:
    """Filesystem-backed store for recordings and recipes."""

    def __init__(self, base_dir: Path | str) -> None:
        self._base_dir = Path(base_dir).expanduser()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def recipes_dir(self) -> Path:
        return self._base_dir / RECIPES_DIRNAME

    @property
    def recordings_dir(self) -> Path:
        return self._base_dir / RECORDINGS_DIRNAME

    def ensure_directories(self) -> None:
        """Create both collection directories if they are missing."""
        try:
            self.recipes_dir.mkdir(parents=True, exist_ok=True)
            self.recordings_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot create store directories: {exc}", path=str(self._base_dir)) from exc

    # ------------------------------------------------------------------
    # Recordings
    # ------------------------------------------------------------------

    def save_recording(self, recording: Recording) -> Path:
        """Persist *recording* as ``<name>-<YYYYMMDDTHHMMSS>.json``.

        A stored recording is never replaced: a second session with the same
        name started within the same second raises StoreError.
        """
        if not _safe_name(recording.name):
            raise StoreError(f"Invalid recording name: {recording.name!r}")
        self.ensure_directories()
        path = self.recordings_dir / f"{recording.file_stem}{JSON_SUFFIX}"
        self._write_atomic(path, dumps(recording.to_wire(), pretty=True))
        log.info("recording_saved", name=recording.name, path=str(path), steps=len(recording.steps))
        return path

    def list_recordings(self) -> list[str]:
        """Stored recording names (filename without ``.json``), newest first."""
        if not self.recordings_dir.is_dir():
            return []
        names = sorted(
            p.name for p in self.recordings_dir.iterdir() if p.name.endswith(JSON_SUFFIX)
        )
        return [name[: -len(JSON_SUFFIX)] for name in reversed(names)]

    def load_recording(self, name: str) -> Recording | None:
        """Load a recording by its stored name (as returned by list_recordings)."""
        if not _safe_name(name):
            return None
        path = self.recordings_dir / f"{name}{JSON_SUFFIX}"
        try:
            return Recording.model_validate_json(path.read_bytes())
        except FileNotFoundError:
            return None
        except (OSError, ValidationError) as exc:
            log.debug("recording_unreadable", path=str(path), error=str(exc))
            return None

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def save_recipe(self, recipe: Recipe) -> Path:
        """Persist *recipe* as ``<name>.json``, replacing any previous version."""
        self.ensure_directories()
        path = self._recipe_path(recipe.name)
        self._write_atomic(path, dumps(recipe.to_file_dict(), pretty=True), replace_existing=True)
        log.info("recipe_saved", name=recipe.name, steps=len(recipe.steps))
        return path

    def save_recipe_data(self, data: bytes | str, name: str | None = None) -> Recipe:
        """Validate raw recipe JSON, then store it verbatim.

        The file is named after *name* when given, else after the recipe's
        own ``name``.  Invalid input is rejected before anything is written.

        Raises:
            RecipeValidationError: *data* is not a well-formed recipe or
                *name* is not a valid file name.
            StoreError: the file could not be written.
        """
        recipe = parse_recipe(data)
        target = name if name is not None else recipe.name
        if not _safe_name(target):
            raise RecipeValidationError(f"Invalid recipe name: {target!r}")

        self.ensure_directories()
        raw = data.encode("utf-8") if isinstance(data, str) else data
        self._write_atomic(self._recipe_path(target), raw, replace_existing=True)
        log.info("recipe_saved", name=target, steps=len(recipe.steps))
        return recipe

    def load_recipe(self, name: str) -> Recipe | None:
        """Load a user recipe by name.

        Only the user directory is consulted; there is no bundled tier yet.
        """
        if not _safe_name(name):
            return None
        return self.load_recipe_from_path(self._recipe_path(name))

    def load_recipe_from_path(self, path: Path | str) -> Recipe | None:
        path = Path(path).expanduser()
        try:
            return parse_recipe(path.read_bytes())
        except FileNotFoundError:
            return None
        except (OSError, RecipeValidationError) as exc:
            log.debug("recipe_unreadable", path=str(path), error=str(exc))
            return None

    def delete_recipe(self, name: str) -> bool:
        """Remove a user recipe.  Returns False if nothing was removed."""
        if not _safe_name(name):
            return False
        try:
            self._recipe_path(name).unlink()
        except OSError:
            return False
        log.info("recipe_deleted", name=name)
        return True

    def list_recipes(self) -> list[RecipeSummary]:
        """Summaries of every parseable recipe, in filename order.

        Files that fail to parse are skipped.
        """
        if not self.recipes_dir.is_dir():
            return []
        summaries: list[RecipeSummary] = []
        for path in sorted(self.recipes_dir.glob(f"*{JSON_SUFFIX}")):
            recipe = self.load_recipe_from_path(path)
            if recipe is None:
                log.debug("recipe_skipped", path=str(path))
                continue
            summaries.append(recipe.summary(source="user"))
        return summaries

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _recipe_path(self, name: str) -> Path:
        return self.recipes_dir / f"{name}{JSON_SUFFIX}"

    def _write_atomic(self, path: Path, data: bytes, replace_existing: bool = False) -> None:
        if not replace_existing and path.exists():
            raise StoreError(f"Refusing to overwrite {path.name}", path=str(path))
        temp_path = path.with_name(path.name + TEMP_SUFFIX)
        try:
            with open(temp_path, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            if replace_existing:
                # Rename-over-existing is not assumed to be supported.
                path.unlink(missing_ok=True)
            os.replace(temp_path, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                temp_path.unlink(missing_ok=True)
            raise StoreError(f"Failed to write {path.name}: {exc}", path=str(path)) from exc
