"""Scene data - users, actors, tokens and the current selection."""

from .loader import SceneLoadError, SceneValidationError, build_scene, load_scene
from .scene import (
    ActorData,
    DerivingSceneToken,
    Scene,
    SceneToken,
    TokenData,
    UserData,
    derive_skill_fields,
)

__all__ = [
    "ActorData",
    "DerivingSceneToken",
    "Scene",
    "SceneLoadError",
    "SceneToken",
    "SceneValidationError",
    "TokenData",
    "UserData",
    "build_scene",
    "derive_skill_fields",
    "load_scene",
]
