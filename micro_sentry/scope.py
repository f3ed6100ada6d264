from copy import copy

from micro_sentry.breadcrumbs import BreadcrumbBuffer
from micro_sentry.consts import DEFAULT_MAX_BREADCRUMBS
from micro_sentry.utils import copy_structure

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any, Iterable, List, Optional

    from micro_sentry._types import (
        Breadcrumb,
        BreadcrumbProcessor,
        Event,
        ScopeState,
    )


class Scope:
    """The scope holds extra information that should be sent with all
    events that belong to it.

    Its state is a plain dict in which a key only exists once it has been
    written: a fresh scope has the state ``{}``, after ``set_tag("a", "b")``
    it is ``{"tags": {"a": "b"}}``.
    """

    __slots__ = (
        "_state",
        "_breadcrumbs",
    )

    def __init__(
        self,
        max_breadcrumbs: "Any" = DEFAULT_MAX_BREADCRUMBS,
        before_breadcrumb: "Optional[BreadcrumbProcessor]" = None,
    ) -> None:
        self._breadcrumbs = BreadcrumbBuffer(max_breadcrumbs, before_breadcrumb)
        self._state: "ScopeState" = {}

    def __copy__(self) -> "Scope":
        """
        Returns a copy of this scope.
        This also creates a copy of all referenced data structures, so that
        neither scope can observe mutations made through the other.
        """
        rv: "Scope" = object.__new__(self.__class__)

        rv._breadcrumbs = self._breadcrumbs.copy()
        rv._state = {}

        for key, value in self._state.items():
            if key == "breadcrumbs":
                rv._state["breadcrumbs"] = rv._breadcrumbs.read()
            else:
                rv._state[key] = copy_structure(value)  # type: ignore

        return rv

    def __repr__(self) -> str:
        return "<%s id=%s state=%r>" % (
            self.__class__.__name__,
            hex(id(self)),
            self._state,
        )

    def fork(self) -> "Scope":
        """Returns an independent copy of this scope."""
        return copy(self)

    @property
    def state(self) -> "ScopeState":
        return self._state

    @property
    def max_breadcrumbs(self) -> int:
        """The effective breadcrumb capacity."""
        return self._breadcrumbs.capacity

    @property
    def before_breadcrumb(self) -> "Optional[BreadcrumbProcessor]":
        return self._breadcrumbs.before_breadcrumb

    def clear(self) -> "Scope":
        """Clears the entire scope."""
        self._state.clear()
        self._breadcrumbs.clear()
        return self

    def set_tag(self, key: str, value: "Any") -> "Scope":
        """
        Sets a tag for a key to a specific value. Other tags are kept.

        :param key: Key of the tag to set.

        :param value: Value of the tag to set.
        """
        self._state.setdefault("tags", {})[key] = value
        return self

    def set_tags(self, tags: "Mapping[str, Any]") -> "Scope":
        """Replaces all tags with the given mapping."""
        self._state["tags"] = dict(tags)
        return self

    def remove_tag(self, key: str) -> "Scope":
        """
        Removes a specific tag.

        :param key: Key of the tag to remove.
        """
        tags = self._state.get("tags")
        if tags is not None:
            tags.pop(key, None)
        return self

    def set_extra(self, key: str, value: "Any") -> "Scope":
        """Sets an extra key to a specific value. Other extras are kept."""
        self._state.setdefault("extra", {})[key] = value
        return self

    def set_extras(self, extras: "Mapping[str, Any]") -> "Scope":
        """Replaces all extras with the given mapping."""
        self._state["extra"] = dict(extras)
        return self

    def remove_extra(self, key: str) -> "Scope":
        """Removes a specific extra key."""
        extra = self._state.get("extra")
        if extra is not None:
            extra.pop(key, None)
        return self

    def set_user(self, value: "Optional[Mapping[str, Any]]") -> "Scope":
        """Sets a user for the scope. `None` removes the user entirely."""
        if value is None:
            self._state.pop("user", None)
        else:
            self._state["user"] = dict(value)
        return self

    def add_breadcrumb(
        self, crumb: "Optional[Breadcrumb]" = None, **kwargs: "Any"
    ) -> "Scope":
        """
        Adds a breadcrumb.

        :param crumb: Dictionary with the breadcrumb data. Keyword arguments
            are merged into it. Even an empty breadcrumb goes through
            `before_breadcrumb` and gets a timestamp.

        With breadcrumbs disabled (`max_breadcrumbs=0`) the state still gets an
        empty ``breadcrumbs`` list.
        """
        new_crumb: "Breadcrumb" = dict(crumb or ())
        new_crumb.update(kwargs)

        accepted = self._breadcrumbs.push(new_crumb)
        if accepted or self._breadcrumbs.capacity == 0:
            self._state["breadcrumbs"] = self._breadcrumbs.read()
        return self

    def set_breadcrumbs(self, crumbs: "Iterable[Breadcrumb]") -> "Scope":
        """Replaces the breadcrumb history. Only the most recent breadcrumbs
        that fit into the buffer are kept."""
        self._breadcrumbs.replace_all(crumbs)
        self._state["breadcrumbs"] = self._breadcrumbs.read()
        return self

    def clear_breadcrumbs(self) -> "Scope":
        """Clears breadcrumb buffer."""
        self._breadcrumbs.clear()
        self._state.pop("breadcrumbs", None)
        return self

    def _apply_tags_to_event(self, event: "Event") -> None:
        if "tags" in self._state:
            event.setdefault("tags", {}).update(copy_structure(self._state["tags"]))

    def _apply_extra_to_event(self, event: "Event") -> None:
        if "extra" in self._state:
            event.setdefault("extra", {}).update(copy_structure(self._state["extra"]))

    def _apply_user_to_event(self, event: "Event") -> None:
        if event.get("user") is None and "user" in self._state:
            event["user"] = copy_structure(self._state["user"])

    def _apply_breadcrumbs_to_event(self, event: "Event") -> None:
        if "breadcrumbs" in self._state:
            crumbs: "List[Breadcrumb]" = event.setdefault("breadcrumbs", [])
            crumbs.extend(copy_structure(self._state["breadcrumbs"]))

    def apply_to_event(self, event: "Event") -> "Event":
        """Applies the information contained on the scope to the given event.

        Only fields present in the state are written, and the event receives
        copies so that it is unaffected by later scope mutations.
        """
        self._apply_tags_to_event(event)
        self._apply_extra_to_event(event)
        self._apply_user_to_event(event)
        self._apply_breadcrumbs_to_event(event)
        return event
