from micro_sentry.consts import DEFAULT_MAX_BREADCRUMBS
from micro_sentry.utils import DROP, copy_structure, logger, now_timestamp, run_hook

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Iterable, List, Optional

    from micro_sentry._types import Breadcrumb, BreadcrumbProcessor


def resolve_max_breadcrumbs(value: "Any") -> int:
    """Turn the `max_breadcrumbs` option into an effective capacity.

    Only non-negative integers are taken literally. Anything else, including
    `None` and negative numbers, means "use the default".
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return DEFAULT_MAX_BREADCRUMBS
    return value


class BreadcrumbBuffer:
    """Bounded, ordered breadcrumb history.

    When full, the oldest breadcrumbs are evicted first. Every breadcrumb goes
    through the optional `before_breadcrumb` hook before it is stored.
    """

    __slots__ = ("capacity", "before_breadcrumb", "_crumbs")

    def __init__(
        self,
        capacity: "Any" = DEFAULT_MAX_BREADCRUMBS,
        before_breadcrumb: "Optional[BreadcrumbProcessor]" = None,
    ) -> None:
        self.capacity = resolve_max_breadcrumbs(capacity)
        self.before_breadcrumb = before_breadcrumb
        self._crumbs: "List[Breadcrumb]" = []

    def __len__(self) -> int:
        return len(self._crumbs)

    def __repr__(self) -> str:
        return "<%s capacity=%s len=%s>" % (
            self.__class__.__name__,
            self.capacity,
            len(self._crumbs),
        )

    def read(self) -> "List[Breadcrumb]":
        """Returns the stored breadcrumbs, oldest first."""
        return self._crumbs

    def clear(self) -> None:
        self._crumbs = []

    def push(self, crumb: "Breadcrumb") -> bool:
        """Stores a breadcrumb. Returns whether it was accepted."""
        if self.capacity == 0:
            return False

        result = run_hook(self.before_breadcrumb, copy_structure(crumb))
        if result is DROP:
            logger.info("before breadcrumb dropped breadcrumb (%s)", crumb)
            return False

        new_crumb: "Breadcrumb" = dict(result.value)
        if new_crumb.get("timestamp") is None:
            new_crumb["timestamp"] = now_timestamp()

        self._crumbs.append(new_crumb)

        overflow = len(self._crumbs) - self.capacity
        if overflow > 0:
            del self._crumbs[:overflow]

        return True

    def replace_all(self, crumbs: "Iterable[Breadcrumb]") -> None:
        """Replaces the history with `crumbs`, as if each was pushed in order.

        If `before_breadcrumb` raises, the current history is left untouched.
        """
        staged = BreadcrumbBuffer(self.capacity, self.before_breadcrumb)
        for crumb in crumbs:
            staged.push(crumb)
        self._crumbs = staged._crumbs

    def copy(self) -> "BreadcrumbBuffer":
        rv = BreadcrumbBuffer(self.capacity, self.before_breadcrumb)
        rv._crumbs = copy_structure(self._crumbs)
        return rv
