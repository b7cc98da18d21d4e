"""
Scene loader module for the complementary skills calculator.

Handles loading and validating scene data (users, actors, tokens and the
current selection) from YAML files.
"""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from .scene import ActorData, DerivingSceneToken, Scene, SceneToken, TokenData, UserData

logger = structlog.get_logger(__name__)


class SceneLoadError(Exception):
    """Raised when there's an error loading scene data."""

    pass


class SceneValidationError(Exception):
    """Raised when scene validation fails."""

    pass


def load_yaml_file(file_path: Path) -> dict[str, Any]:
    """
    Load a YAML file containing a scene definition.

    Args:
        file_path: Path to the YAML file

    Returns:
        Scene dictionary

    Raises:
        SceneLoadError: If the file cannot be loaded or parsed
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SceneLoadError(f"YAML parsing error in {file_path}: {e}") from e
    except FileNotFoundError as e:
        raise SceneLoadError(f"File not found: {file_path}") from e
    except OSError as e:
        raise SceneLoadError(f"Error loading {file_path}: {e}") from e

    if not data:
        raise SceneLoadError(f"Empty YAML file: {file_path}")

    if not isinstance(data, dict):
        raise SceneLoadError(f"Scene file must contain a mapping: {file_path}")

    if "tokens" not in data:
        raise SceneLoadError(f"Missing 'tokens' key in {file_path}")

    for key in ("users", "actors", "tokens", "controlled"):
        if key in data and not isinstance(data[key], list):
            raise SceneLoadError(f"'{key}' must be a list in {file_path}")

    return data


def _validate_list(model: type, entries: list[Any], kind: str, file_path: Path) -> list[Any]:
    items = []
    for entry in entries:
        try:
            items.append(model.model_validate(entry))
        except ValidationError as e:
            entry_id = entry.get("id", "unknown") if isinstance(entry, dict) else "unknown"
            raise SceneValidationError(
                f"Invalid {kind} '{entry_id}' in {file_path}: {e}"
            ) from e

    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise SceneValidationError(f"Duplicate {kind} ID '{item.id}' found in {file_path}")
        seen.add(item.id)
    return items


def build_scene(data: dict[str, Any], file_path: Path) -> Scene:
    """
    Create a Scene from a loaded scene dictionary.

    Args:
        data: Dictionary from ``load_yaml_file``
        file_path: Path to the source file (for error messages)

    Returns:
        Scene with tokens bound to their actors

    Raises:
        SceneValidationError: If entries are invalid or reference unknown actors/tokens
    """
    users = _validate_list(UserData, data.get("users") or [], "user", file_path)
    actors = _validate_list(ActorData, data.get("actors") or [], "actor", file_path)
    token_data = _validate_list(TokenData, data.get("tokens") or [], "token", file_path)
    actors_by_id = {actor.id: actor for actor in actors}

    tokens: list[SceneToken] = []
    for td in token_data:
        actor = None
        if td.actor_id is not None:
            actor = actors_by_id.get(td.actor_id)
            if actor is None:
                raise SceneValidationError(
                    f"Token '{td.id}' in {file_path} references unknown actor '{td.actor_id}'"
                )
        token_cls = DerivingSceneToken if td.derivable else SceneToken
        tokens.append(token_cls(td, actor))

    token_ids = {token.id for token in tokens}
    controlled = [str(tid) for tid in data.get("controlled") or []]
    for tid in controlled:
        if tid not in token_ids:
            raise SceneValidationError(f"Selected token '{tid}' in {file_path} does not exist")

    return Scene(users=users, tokens=tokens, controlled_ids=controlled)


def load_scene(file_path: Path) -> Scene:
    """
    Load a scene from a YAML file.

    Args:
        file_path: Path to the scene YAML

    Returns:
        Scene instance

    Raises:
        SceneLoadError: If the file can't be loaded
        SceneValidationError: If scene validation fails
    """
    scene = build_scene(load_yaml_file(file_path), file_path)
    logger.info(
        "scene_loaded",
        path=str(file_path),
        users=len(scene.users),
        tokens=len(scene.tokens),
        controlled=len(scene.controlled_ids),
    )
    return scene
