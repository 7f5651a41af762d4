"""
Registry of scripted actions:
- actions are registered by name together with a params model (Pydantic v2)
- validate_spec() checks a step before it runs
"""
# @file purpose: Provide action registry, metadata, and spec validation.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Type

from pydantic import BaseModel, TypeAdapter

from .action import ActionSpec

# (driver, params) -> ActionResult
ActionFn = Callable[..., Any]


@dataclass(frozen=True)
class ActionMeta:
    name: str
    params_model: Optional[Type[BaseModel]] = None


_REGISTRY: Dict[str, ActionFn] = {}
_META: Dict[str, ActionMeta] = {}


def action(
    name: str, *, params_model: Optional[Type[BaseModel]] = None
) -> Callable[[ActionFn], ActionFn]:
    """
    Decorator registering an action and its params model:
        @action("open_url", params_model=OpenUrlParams)
        def open_url(driver, params): ...
    """

    def deco(fn: ActionFn) -> ActionFn:
        register(name, fn, params_model=params_model)
        return fn

    return deco


def register(name: str, fn: ActionFn, *, params_model: Optional[Type[BaseModel]] = None) -> None:
    _REGISTRY[name] = fn
    _META[name] = ActionMeta(name=name, params_model=params_model)


def get_action(name: str) -> ActionFn:
    try:
        return _REGISTRY[name]
    except KeyError as e:
        raise KeyError(f"Action not registered: {name}") from e


def get_meta(name: str) -> ActionMeta:
    try:
        return _META[name]
    except KeyError as e:
        raise KeyError(f"Action not registered (no metadata): {name}") from e


def list_actions() -> Dict[str, ActionMeta]:
    return dict(_META)


def validate_spec(spec: ActionSpec) -> Tuple[ActionMeta, Optional[BaseModel]]:
    """
    1) the action must be registered (KeyError otherwise)
    2) args are validated against its params model (ValidationError otherwise)
    3) returns (ActionMeta, parsed params | None)
    """
    meta = get_meta(spec.name)
    if meta.params_model is None:
        return meta, None
    params_obj = TypeAdapter(meta.params_model).validate_python(spec.args)
    return meta, params_obj
