"""
Lifecycle hooks for import and export jobs.

Jobs may supply a MigrationHooks object, either directly or by the name it
was registered under. The HookDispatcher invokes its hooks at fixed points of
the pipelines and does nothing when a job has no hooks object.

Hook points:
    init(collection)  start of import initialize; receives the raw-row collection
    before(rows)      after spreadsheet extraction; may return replacement rows
    parse(row)        per row after mapping; mutates the row in place
    valid(row)        per row after built-in validation; returns error messages
    after(rows)       before load; may return replacement rows
    dump(rows)        before an export is written; may return replacement rows
    end(summary)      after load; receives the ImportResult
"""

import importlib
import logging
from typing import Any, Callable, Dict, List, Optional, Type, Union

from .exceptions import ConfigurationError, DataMigrateError, HookError
from .validation.validation_models import FieldError


class MigrationHooks:
    """
    Base class for job hooks. Every hook defaults to doing nothing.

    Subclasses override only the hooks they need. Hooks signal failure by
    raising; hooks that may replace data return the new rows, or None to
    keep the current ones.
    """

    def init(self, collection) -> None:
        return None

    def before(self, rows: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        return None

    def parse(self, row: Dict[str, Any]) -> None:
        return None

    def valid(self, row: Dict[str, Any]) -> Optional[List[Any]]:
        return None

    def after(self, rows: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        return None

    def dump(self, rows: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        return None

    def end(self, summary) -> None:
        return None


HooksFactory = Union[Type[MigrationHooks], Callable[[], MigrationHooks]]

_registry: Dict[str, HooksFactory] = {}


def register_hooks(name: str, factory: Optional[HooksFactory] = None):
    """
    Register a hooks class under a name jobs can refer to.

    Usable directly, register_hooks('users', UserHooks), or as a class
    decorator, @register_hooks('users').
    """
    def decorator(target: HooksFactory) -> HooksFactory:
        _registry[name] = target
        return target

    if factory is not None:
        return decorator(factory)
    return decorator


def unregister_hooks(name: str) -> None:
    _registry.pop(name, None)


def lookup_hooks(name: str) -> MigrationHooks:
    """
    Instantiate the hooks registered under name.

    Names of the form 'package.module:ClassName' are imported on first use,
    which lets job files point at hooks that were never registered.
    """
    if name not in _registry and ':' in name:
        module_name, _, attribute = name.partition(':')
        try:
            _registry[name] = getattr(importlib.import_module(module_name), attribute)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Cannot load hooks '{name}': {e}")
    try:
        factory = _registry[name]
    except KeyError:
        raise ConfigurationError(f"No hooks registered under '{name}'")
    return factory()


class HookDispatcher:
    """
    Invokes the hooks of an optional MigrationHooks object.

    Failures raised by a hook are re-raised as HookError carrying the hook name.
    """

    def __init__(self, hooks: Optional[MigrationHooks] = None):
        self.logger = logging.getLogger(__name__)
        self.hooks = hooks

    @classmethod
    def resolve(cls, hooks: Union[None, str, MigrationHooks]) -> "HookDispatcher":
        """Build a dispatcher from a hooks object, a registered name, or None."""
        if hooks is None:
            return cls(None)
        if isinstance(hooks, str):
            return cls(lookup_hooks(hooks))
        if isinstance(hooks, type):
            return cls(hooks())
        return cls(hooks)

    @property
    def enabled(self) -> bool:
        return self.hooks is not None

    def _call(self, name: str, *args) -> Any:
        if self.hooks is None:
            return None
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Invoking hook {name}")
        try:
            return getattr(self.hooks, name)(*args)
        except DataMigrateError:
            raise
        except Exception as e:
            raise HookError(name, e) from e

    def _replace(self, name: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        replaced = self._call(name, rows)
        if replaced is None:
            return rows
        return list(replaced)

    def init(self, collection) -> None:
        self._call('init', collection)

    def before(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._replace('before', rows)

    def parse(self, row: Dict[str, Any]) -> None:
        self._call('parse', row)

    def valid(self, row: Dict[str, Any]) -> List[FieldError]:
        messages = self._call('valid', row)
        if not messages:
            return []
        if not isinstance(messages, (list, tuple)):
            messages = [messages]
        return [FieldError.from_message(message) for message in messages]

    def after(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._replace('after', rows)

    def dump(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._replace('dump', rows)

    def end(self, summary) -> None:
        self._call('end', summary)
