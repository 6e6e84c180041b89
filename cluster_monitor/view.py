"""View state and row projection for the dashboard.

The engine owns the displayed snapshot and all UI-only state. Everything is
keyed by name paths (RowKey), so expansion, selection, sort and filter
survive snapshot replacement even when order or counts change.
"""

from dataclasses import dataclass, field
from enum import Enum

from cluster_monitor.logging_config import get_logger
from cluster_monitor.models.cluster import Cluster, Instance, Replicaset, RowKey, Tier

logger = get_logger(__name__)


class ViewMode(Enum):
    """Layout of the main list."""

    TIERS = "tiers"
    REPLICASETS = "replicasets"
    INSTANCES = "instances"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def cycle_next(self) -> "ViewMode":
        modes = list(ViewMode)
        return modes[(modes.index(self) + 1) % len(modes)]


class SortField(Enum):
    """Instance list sort field."""

    NAME = "name"
    FAILURE_DOMAIN = "failure_domain"

    @property
    def label(self) -> str:
        return {SortField.NAME: "Name", SortField.FAILURE_DOMAIN: "Failure Domain"}[self]

    def cycle_next(self) -> "SortField":
        fields = list(SortField)
        return fields[(fields.index(self) + 1) % len(fields)]


class SortOrder(Enum):
    """Direction of the primary sort comparison."""

    ASCENDING = "asc"
    DESCENDING = "desc"

    @property
    def arrow(self) -> str:
        return "↑" if self is SortOrder.ASCENDING else "↓"

    def toggle(self) -> "SortOrder":
        if self is SortOrder.ASCENDING:
            return SortOrder.DESCENDING
        return SortOrder.ASCENDING


class RowKind(Enum):
    TIER = "tier"
    REPLICASET = "replicaset"
    INSTANCE = "instance"


@dataclass(frozen=True)
class Row:
    """One line of the main list."""

    kind: RowKind
    key: RowKey
    node: Tier | Replicaset | Instance
    expanded: bool = False
    is_last: bool = False

    @property
    def depth(self) -> int:
        return len(self.key) - 1


@dataclass
class ViewState:
    """UI-only state, orthogonal to the data snapshot."""

    mode: ViewMode = ViewMode.TIERS
    expanded: set[RowKey] = field(default_factory=set)
    selected_key: RowKey | None = None
    selected_index: int = 0
    sort_field: SortField = SortField.NAME
    sort_order: SortOrder = SortOrder.ASCENDING
    filter_text: str = ""
    filter_editing: bool = False
    show_detail: bool = False


def matches_filter(instance: Instance, text: str) -> bool:
    """Case-insensitive substring match over the searchable instance fields.

    Searched: instance name, tier, replicaset, binary address and the
    failure-domain pairs. State is not searchable.
    """
    if not text:
        return True
    needle = text.lower()
    fields = (
        instance.name,
        instance.tier,
        instance.replicaset,
        instance.binary_address,
        instance.failure_domain_text,
    )
    return any(needle in value.lower() for value in fields)


def sort_instances(
    instances: list[Instance], sort_field: SortField, order: SortOrder
) -> list[Instance]:
    """Sort instances; the name tie-break is always ascending."""
    descending = order is SortOrder.DESCENDING
    by_name = sorted(instances, key=lambda i: i.name)
    if sort_field is SortField.NAME:
        return list(reversed(by_name)) if descending else by_name
    # sorted() is stable with reverse=True, so equal domains keep name order
    return sorted(by_name, key=lambda i: i.failure_domain_sort_key, reverse=descending)


def project_rows(cluster: Cluster | None, state: ViewState) -> list[Row]:
    """Derive the visible rows from a snapshot and the view state."""
    if cluster is None:
        return []

    match state.mode:
        case ViewMode.TIERS:
            return _tree_rows(cluster, state.expanded)
        case ViewMode.REPLICASETS:
            return [Row(RowKind.REPLICASET, rs.key, rs) for rs in cluster.iter_replicasets()]
        case ViewMode.INSTANCES:
            text = state.filter_text
            instances = [i for i in cluster.iter_instances() if matches_filter(i, text)]
            ordered = sort_instances(instances, state.sort_field, state.sort_order)
            return [Row(RowKind.INSTANCE, i.key, i) for i in ordered]
    return []


def _tree_rows(cluster: Cluster, expanded: set[RowKey]) -> list[Row]:
    rows = []
    for t_idx, tier in enumerate(cluster.tiers):
        tier_open = tier.key in expanded
        rows.append(
            Row(RowKind.TIER, tier.key, tier, tier_open, is_last=t_idx == len(cluster.tiers) - 1)
        )
        if not tier_open:
            continue
        for r_idx, rs in enumerate(tier.replicasets):
            rs_open = rs.key in expanded
            rows.append(
                Row(
                    RowKind.REPLICASET,
                    rs.key,
                    rs,
                    rs_open,
                    is_last=r_idx == len(tier.replicasets) - 1,
                )
            )
            if not rs_open:
                continue
            for i_idx, inst in enumerate(rs.instances):
                rows.append(
                    Row(RowKind.INSTANCE, inst.key, inst, is_last=i_idx == len(rs.instances) - 1)
                )
    return rows


class ViewEngine:
    """Holds the displayed snapshot plus view state and answers what to render."""

    def __init__(self, state: ViewState | None = None):
        self.cluster: Cluster | None = None
        self.state = state or ViewState()

    @property
    def mode(self) -> ViewMode:
        return self.state.mode

    @property
    def selected_index(self) -> int:
        return self.state.selected_index

    def visible_rows(self) -> list[Row]:
        return project_rows(self.cluster, self.state)

    def selected_row(self) -> Row | None:
        rows = self.visible_rows()
        if not rows:
            return None
        return rows[self.state.selected_index]

    def selected_instance(self) -> Instance | None:
        row = self.selected_row()
        if row is not None and row.kind is RowKind.INSTANCE:
            return row.node
        return None

    # Snapshot

    def apply_snapshot(self, cluster: Cluster) -> None:
        """Replace the displayed snapshot, keeping UI state keyed by name."""
        stale = {key for key in self.state.expanded if not cluster.has(key)}
        self.cluster = cluster
        self.state.expanded -= stale
        if stale:
            logger.debug(f"Dropped {len(stale)} expansion keys not present in new snapshot")
        self._reconcile_selection()

    # Mode

    def set_view_mode(self, mode: ViewMode) -> bool:
        """Switch view mode, resetting selection, sort and filter on entry."""
        if mode is self.state.mode:
            return False
        self.state.mode = mode
        self.state.sort_field = SortField.NAME
        self.state.sort_order = SortOrder.ASCENDING
        self.state.filter_text = ""
        self.state.filter_editing = False
        self.state.show_detail = False
        self._select_index(0)
        return True

    def cycle_view_mode(self) -> ViewMode:
        self.set_view_mode(self.state.mode.cycle_next())
        return self.state.mode

    # Tree navigation

    def toggle_expand(self, key: RowKey) -> bool:
        """Expand or collapse a tier or replicaset (Tiers mode only)."""
        if self.state.mode is not ViewMode.TIERS or not self._is_branch(key):
            return False
        if key in self.state.expanded:
            self._collapse(key)
        else:
            self.state.expanded.add(key)
        self._reconcile_selection()
        return True

    def expand_selected(self) -> bool:
        """Expand the selected branch; on an instance row, open its details."""
        row = self.selected_row()
        if row is None:
            return False
        if row.kind is RowKind.INSTANCE:
            return self.open_detail()
        if self.state.mode is not ViewMode.TIERS or row.key in self.state.expanded:
            return False
        self.state.expanded.add(row.key)
        self._reconcile_selection()
        return True

    def collapse_selected(self) -> bool:
        """Collapse the selected branch, or the parent replicaset of an instance."""
        if self.state.mode is not ViewMode.TIERS:
            return False
        row = self.selected_row()
        if row is None:
            return False
        target = row.key[:2] if row.kind is RowKind.INSTANCE else row.key
        if target not in self.state.expanded:
            return False
        self._collapse(target)
        self.state.selected_key = target
        self._reconcile_selection()
        return True

    def _collapse(self, key: RowKey) -> None:
        self.state.expanded.discard(key)
        if len(key) == 1:
            self.state.expanded = {k for k in self.state.expanded if k[0] != key[0]}

    def _is_branch(self, key: RowKey) -> bool:
        return self.cluster is not None and len(key) in (1, 2) and self.cluster.has(key)

    # Selection

    def select_next(self) -> None:
        rows = self.visible_rows()
        if rows:
            self._select_index((self.state.selected_index + 1) % len(rows), rows)

    def select_previous(self) -> None:
        rows = self.visible_rows()
        if rows:
            self._select_index((self.state.selected_index - 1) % len(rows), rows)

    def select_first(self) -> None:
        self._select_index(0)

    def select_last(self) -> None:
        rows = self.visible_rows()
        self._select_index(len(rows) - 1, rows)

    def select_index(self, index: int) -> None:
        self._select_index(index)

    def open_detail(self) -> bool:
        if self.selected_instance() is None:
            return False
        self.state.show_detail = True
        return True

    def close_detail(self) -> None:
        self.state.show_detail = False

    # Sort and filter (Instances mode)

    def cycle_sort_field(self) -> bool:
        if self.state.mode is not ViewMode.INSTANCES:
            return False
        self.state.sort_field = self.state.sort_field.cycle_next()
        self._reconcile_selection()
        return True

    def toggle_sort_order(self) -> bool:
        if self.state.mode is not ViewMode.INSTANCES:
            return False
        self.state.sort_order = self.state.sort_order.toggle()
        self._reconcile_selection()
        return True

    def set_filter_text(self, text: str) -> bool:
        if self.state.mode is not ViewMode.INSTANCES:
            return False
        self.state.filter_text = text
        self._reconcile_selection()
        return True

    def begin_filter(self) -> bool:
        if self.state.mode is not ViewMode.INSTANCES:
            return False
        self.state.filter_editing = True
        return True

    def append_filter_char(self, char: str) -> bool:
        if not self.state.filter_editing:
            return False
        return self.set_filter_text(self.state.filter_text + char)

    def pop_filter_char(self) -> bool:
        if not self.state.filter_editing or not self.state.filter_text:
            return False
        return self.set_filter_text(self.state.filter_text[:-1])

    def end_filter(self) -> None:
        self.state.filter_editing = False

    def clear_filter(self) -> None:
        self.state.filter_editing = False
        if self.state.filter_text:
            self.set_filter_text("")

    # Internals

    def _select_index(self, index: int, rows: list[Row] | None = None) -> None:
        if rows is None:
            rows = self.visible_rows()
        previous = self.state.selected_key
        if rows:
            index = max(0, min(index, len(rows) - 1))
            self.state.selected_index = index
            self.state.selected_key = rows[index].key
        else:
            self.state.selected_index = 0
            self.state.selected_key = None
        # Details always describe the selected instance
        if not self._same_target(self.state.selected_key, previous):
            self.state.show_detail = False

    def _reconcile_selection(self) -> None:
        """Follow the selected key if still visible, otherwise clamp the index."""
        rows = self.visible_rows()
        key = self.state.selected_key
        if key is not None:
            for idx, row in enumerate(rows):
                if self._same_target(row.key, key):
                    self._select_index(idx, rows)
                    return
        self._select_index(self.state.selected_index, rows)

    def _same_target(self, a: RowKey | None, b: RowKey | None) -> bool:
        """Compare selection keys; flat instance rows are identified by name alone."""
        if a == b:
            return True
        if a is None or b is None or self.state.mode is not ViewMode.INSTANCES:
            return False
        return len(a) == len(b) == 3 and a[-1] == b[-1]
